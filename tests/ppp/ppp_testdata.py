"""Synthetic uncombined PPP epochs shared by the ppp tests"""

from dataclasses import dataclass, field
from typing import Dict

import numpy as np

from pyppp.core.constants import GAMMA_L2, LAMBDA_L1, LAMBDA_L2
from pyppp.core.data_structures import EpochData, Observable, ObsType, SatelliteData

SOURCE = 'WUHN'

# sat -> (elevation, azimuth) in degrees
GEOMETRY = {
    'G05': (62.0, 40.0),
    'G12': (35.0, 130.0),
    'G20': (48.0, 220.0),
    'G24': (20.0, 300.0),
    'G29': (75.0, 10.0),
    'G31': (15.0, 175.0),
}


@dataclass
class Truth:
    """True values used to generate noise-free prefits"""
    clock: float = 15.0
    trop: float = 0.0
    coords: Dict[ObsType, float] = field(default_factory=dict)
    iono: Dict[str, float] = field(default_factory=dict)
    n1: Dict[str, float] = field(default_factory=dict)
    n2: Dict[str, float] = field(default_factory=dict)

    @classmethod
    def default(cls):
        truth = cls()
        for k, sat in enumerate(sorted(GEOMETRY)):
            truth.iono[sat] = 1.0 + 0.5 * k
            truth.n1[sat] = 10.0 + 3 * k
            truth.n2[sat] = 7.0 + 2 * k
        return truth


def partials_for(sat):
    elev, azim = np.deg2rad(GEOMETRY[sat])
    los = np.array([np.cos(elev) * np.sin(azim), np.cos(elev) * np.cos(azim), np.sin(elev)])
    return {
        ObsType.WET_TROP: 1.0 / np.sin(elev),
        ObsType.DX: -los[0],
        ObsType.DY: -los[1],
        ObsType.DZ: -los[2],
    }


def make_sat_data(sat, truth=None):
    truth = truth or Truth.default()
    partials = partials_for(sat)
    geom = truth.clock + partials[ObsType.WET_TROP] * truth.trop
    for obs_type, value in truth.coords.items():
        geom += partials[obs_type] * value
    iono = truth.iono[sat]
    prefit = {
        Observable.C1: geom + iono,
        Observable.P2: geom + GAMMA_L2 * iono,
        Observable.L1: geom - iono + LAMBDA_L1 * truth.n1[sat],
        Observable.L2: geom - GAMMA_L2 * iono + LAMBDA_L2 * truth.n2[sat],
    }
    return SatelliteData(sat, prefit=prefit, elevation=GEOMETRY[sat][0],
                         iono_apriori=iono, partials=partials)


def make_epoch(time, sats, truth=None, source=SOURCE):
    truth = truth or Truth.default()
    epoch = EpochData(time=time, source=source, trop_wet_apriori=truth.trop)
    for sat in sats:
        epoch.add(make_sat_data(sat, truth))
    return epoch
