"""
Material property resolution.

The raw material data gives literature ranges for each property. Density
and specific heat capacity are taken as the mean of the range, while the
thermal conductivity can be sampled anywhere within it.
"""

from ..core.errors import MissingDataError
from ..core.models import Material
from ..utils.validation import validate_weight


def _bounds(material: Material, minimum: str, maximum: str):
    low = getattr(material, minimum)
    high = getattr(material, maximum)
    if low is None or high is None:
        raise MissingDataError(
            f"`{minimum}` or `{maximum}` undefined for material `{material.name}`"
        )
    return float(low), float(high)


def mean_density(material: Material) -> float:
    """Average density [kg/m3] of the material, (min + max) / 2."""
    low, high = _bounds(material, "minimum_density_kg_m3", "maximum_density_kg_m3")
    return (low + high) / 2.0


def mean_specific_heat_capacity(material: Material) -> float:
    """Average specific heat capacity [J/kgK] of the material, (min + max) / 2."""
    low, high = _bounds(
        material,
        "minimum_specific_heat_capacity_J_kgK",
        "maximum_specific_heat_capacity_J_kgK",
    )
    return (low + high) / 2.0


def weighted_thermal_conductivity(material: Material, weight: float = 0.5) -> float:
    """
    Thermal conductivity [W/mK] of the material sampled within its range.

    Calculated as `weight * max + (1 - weight) * min`.

    Args:
        material: Material with min/max thermal conductivity
        weight: 0 uses the minimum, 1 the maximum conductivity

    Raises:
        ValidationError: If `weight` is outside [0, 1]
    """
    weight = validate_weight(weight, field="thermal_conductivity_weight")
    low, high = _bounds(
        material,
        "minimum_thermal_conductivity_W_mK",
        "maximum_thermal_conductivity_W_mK",
    )
    return weight * high + (1.0 - weight) * low
