from __future__ import annotations

import astropy.constants as const
from astropy import units as u
from astropy.time import Time

C_KM_S = float(const.c.to(u.km / u.s).value)
DAY_S = 86400.0
J2000_TDB = Time("J2000", scale="tdb")
