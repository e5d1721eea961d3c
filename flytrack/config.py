"""
Track configuration surface.

Defaults for vehicle properties can be overridden from the environment.
"""

import os
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_MASS_KG = float(os.getenv("FLYTRACK_MASS_KG", "90"))
DEFAULT_PLANFORM_AREA_M2 = float(os.getenv("FLYTRACK_PLANFORM_AREA_M2", "2"))
MIN_SATELLITES = int(os.getenv("FLYTRACK_MIN_SATELLITES", "0"))


class GroundReference(Enum):
    """How the ground altitude is chosen."""

    AUTOMATIC = "automatic"  # h_msl of the last sample
    MANUAL = "manual"        # fixed_reference


class TrackOptions(BaseModel):
    """
    Pipeline configuration.

    Assignments are validated, so a bad value fails at the point it is set
    rather than during derivation.
    """

    model_config = ConfigDict(validate_assignment=True)

    ground_reference: GroundReference = GroundReference.MANUAL
    fixed_reference: float = 0.0

    wind_adjustment: bool = False
    wind_e: float = 0.0  # m/s, positive blowing towards east
    wind_n: float = 0.0  # m/s, positive blowing towards north

    mass: float = Field(default=DEFAULT_MASS_KG, gt=0)                    # kg
    planform_area: float = Field(default=DEFAULT_PLANFORM_AREA_M2, gt=0)  # m^2

    # Use the spherical forward azimuth instead of the legacy approximation
    exact_bearing: bool = False
