"""
Integrity checks of the raw building stock data.

Runs before the aggregation as a pre-flight report: referential integrity,
parameter types, plausible value ranges and the shape rules of the
structural layers. All violations are collected into an `IntegrityReport`,
nothing is raised unless the caller asks for it.

Usage:
    report = validate_repository(repository)
    report.log()
    report.raise_if_any()  # strict mode
"""

from typing import Callable, Dict, Iterable, List, Set, Tuple
import logging
import math

from ..core.models import LayerRecord, LayerTag
from ..core.repository import BuildingStockRepository
from .report import IntegrityReport, ViolationCategory

logger = logging.getLogger(__name__)

WEIGHT_TOLERANCE = 1e-6

ZERO_LAYER_TAGS = (LayerTag.LOAD_BEARING, LayerTag.THERMAL_INSULATION)
INNER_TAGS = (LayerTag.INTERIOR_FINISH,)
OUTER_TAGS = (LayerTag.EXTERIOR_FINISH, LayerTag.CRAWL_SPACE, LayerTag.GROUND)

# Relationship attribute -> object classes of its members
RELATIONSHIP_MEMBERS: Dict[str, Tuple[str, ...]] = {
    "building_stock_records": (
        "building_stock", "building_type", "building_period", "location_id", "heat_source",
    ),
    "average_floor_areas": ("building_type", "location_id", "building_period"),
    "frame_material_shares": ("building_type", "location_id", "frame_material"),
    "fenestration_sources": ("source", "building_type"),
    "design_U_values": ("source", "structure"),
    "building_type_weights": ("source", "structure", "building_type"),
    "layers": ("source", "structure", "layer_id", "structure_material"),
    "structure_structure_types": ("structure", "structure_type"),
    "structure_material_frame_materials": ("structure_material", "frame_material"),
    "structure_type_heat_flow_directions": ("structure_type", "ventilation_space_heat_flow_direction"),
    "ventilation_sources": ("source", "building_type"),
}

# Object class -> (relationship attribute, member index) pairs expected to use it
OBJECT_USAGE: Dict[str, List[Tuple[str, int]]] = {
    "building_period": [("building_stock_records", 2), ("average_floor_areas", 2)],
    "building_stock": [("building_stock_records", 0)],
    "building_type": [
        ("building_stock_records", 1),
        ("average_floor_areas", 0),
        ("building_type_weights", 2),
        ("ventilation_sources", 1),
        ("fenestration_sources", 1),
    ],
    "frame_material": [("structure_material_frame_materials", 1), ("frame_material_shares", 2)],
    "heat_source": [("building_stock_records", 4)],
    "layer_id": [("layers", 2)],
    "location_id": [("building_stock_records", 3), ("average_floor_areas", 1)],
    "source": [("design_U_values", 0), ("ventilation_sources", 0), ("fenestration_sources", 0)],
    "structure": [("design_U_values", 1)],
    "structure_material": [("layers", 3)],
    "structure_type": [("structure_structure_types", 1)],
    "ventilation_space_heat_flow_direction": [("structure_type_heat_flow_directions", 1)],
}


def _is_real(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and not math.isnan(value)


def _is_bool(value) -> bool:
    return isinstance(value, bool)


def _is_text(value) -> bool:
    return isinstance(value, str)


def _members(repository: BuildingStockRepository, attribute: str) -> Iterable[Tuple[str, ...]]:
    return list(getattr(repository, attribute))


def _object_names(repository: BuildingStockRepository, object_class: str) -> Set[str]:
    return set(repository.get_object_class(object_class))


# =============================================================================
# REFERENTIAL INTEGRITY
# =============================================================================

def check_object_usage(repository: BuildingStockRepository, report: IntegrityReport) -> None:
    """Every object should be used by the relationships that give it meaning."""
    for object_class, usages in OBJECT_USAGE.items():
        used: Set[str] = set()
        for attribute, index in usages:
            used.update(members[index] for members in _members(repository, attribute))
        for name in repository.get_object_class(object_class):
            if object_class == "structure_type":
                structure_type = repository.structure_types[name]
                if structure_type.load_bearing_parent is not None:
                    continue
            relationships = ", ".join(f"`{a}`" for a, _ in usages)
            report.check(
                name in used,
                ViolationCategory.UNUSED_OBJECT,
                object_class,
                name,
                f"not used in {relationships}",
            )


def check_references(repository: BuildingStockRepository, report: IntegrityReport) -> None:
    """Every relationship member must exist in its object class."""
    names = {
        object_class: _object_names(repository, object_class)
        for classes in RELATIONSHIP_MEMBERS.values()
        for object_class in classes
    }
    for attribute, classes in RELATIONSHIP_MEMBERS.items():
        for members in _members(repository, attribute):
            for member, object_class in zip(members, classes):
                report.check(
                    member in names[object_class],
                    ViolationCategory.MISSING_REFERENCE,
                    attribute,
                    members,
                    f"`{member}` not found in `{object_class}`",
                )


# =============================================================================
# PARAMETER TYPES
# =============================================================================

def _check_type(
    report: IntegrityReport,
    entity: str,
    key,
    record,
    names: Iterable[str],
    predicate: Callable[[object], bool],
    expected: str,
) -> None:
    for name in names:
        value = getattr(record, name)
        report.check(
            predicate(value),
            ViolationCategory.PARAMETER_TYPE,
            entity,
            key,
            f"invalid `{name}`: {expected} required, got {value!r}",
        )


def check_parameter_types(repository: BuildingStockRepository, report: IntegrityReport) -> None:
    """Required parameters must be present and of the expected type."""
    for name, source in repository.sources.items():
        _check_type(report, "source", name, source, ["source_year"], _is_real, "number")
        _check_type(report, "source", name, source, ["source_description"], _is_text, "text")

    for name, structure_type in repository.structure_types.items():
        if structure_type.load_bearing_parent is not None:
            continue
        _check_type(
            report, "structure_type", name, structure_type,
            ["exterior_resistance_m2K_W", "interior_resistance_m2K_W", "linear_thermal_bridge_W_mK"],
            _is_real, "number",
        )
        _check_type(report, "structure_type", name, structure_type, ["is_internal"], _is_bool, "boolean")
        _check_type(report, "structure_type", name, structure_type, ["structure_type_notes"], _is_text, "text")

    for name, material in repository.structure_materials.items():
        _check_type(
            report, "structure_material", name, material,
            [
                "minimum_density_kg_m3", "maximum_density_kg_m3",
                "minimum_specific_heat_capacity_J_kgK", "maximum_specific_heat_capacity_J_kgK",
                "minimum_thermal_conductivity_W_mK", "maximum_thermal_conductivity_W_mK",
            ],
            _is_real, "number",
        )

    for name, period in repository.building_periods.items():
        _check_type(report, "building_period", name, period, ["period_start", "period_end"], _is_real, "number")
        if _is_real(period.period_start) and _is_real(period.period_end):
            report.check(
                period.period_start <= period.period_end,
                ViolationCategory.IMPLAUSIBLE_VALUE,
                "building_period", name,
                "`period_start` must not be after `period_end`",
            )

    for name, location in repository.location_ids.items():
        _check_type(report, "location_id", name, location, ["location_name"], _is_text, "text")

    for key, record in repository.building_stock_records.items():
        _check_type(
            report, "building_stock_statistics", key, record,
            ["number_of_buildings"], _is_real, "number",
        )

    for key, value in repository.average_floor_areas.items():
        report.check(
            _is_real(value),
            ViolationCategory.PARAMETER_TYPE,
            "building_type__location_id__building_period", key,
            f"invalid `average_floor_area_m2`: number required, got {value!r}",
        )

    for key, value in repository.design_U_values.items():
        report.check(
            value is None or _is_real(value),
            ViolationCategory.PARAMETER_TYPE,
            "source__structure", key,
            f"invalid `design_U_W_m2K`: number required, got {value!r}",
        )

    for key, value in repository.building_type_weights.items():
        report.check(
            _is_real(value) and 0 <= value <= 1,
            ViolationCategory.IMPLAUSIBLE_VALUE,
            "source__structure__building_type", key,
            f"invalid `building_type_weight`: 0 <= number <= 1 required, got {value!r}",
        )

    for key, record in repository.ventilation_sources.items():
        _check_type(
            report, "ventilation_source__building_type", key, record,
            [
                "min_ventilation_rate_1_h", "max_ventilation_rate_1_h",
                "min_n50_infiltration_rate_1_h", "max_n50_infiltration_rate_1_h",
                "min_infiltration_factor", "max_infiltration_factor",
                "min_HRU_efficiency", "max_HRU_efficiency",
            ],
            _is_real, "number",
        )

    for key, record in repository.fenestration_sources.items():
        _check_type(
            report, "fenestration_source__building_type", key, record,
            ["min_U_value_W_m2K", "max_U_value_W_m2K", "frame_area_fraction", "solar_energy_transmittance"],
            _is_real, "number",
        )

    for name, direction in repository.ventilation_space_heat_flow_directions.items():
        resistances = direction.thermal_resistance_m2K_W
        report.check(
            len(resistances) > 0,
            ViolationCategory.PARAMETER_TYPE,
            "ventilation_space_heat_flow_direction", name,
            "`thermal_resistance_m2K_W` map must not be empty",
        )
        report.check(
            all(_is_real(w) and _is_real(r) for w, r in resistances.items()),
            ViolationCategory.PARAMETER_TYPE,
            "ventilation_space_heat_flow_direction", name,
            "`thermal_resistance_m2K_W` map must contain only numbers",
        )


# =============================================================================
# PLAUSIBILITY
# =============================================================================

def check_materials(repository: BuildingStockRepository, report: IntegrityReport) -> None:
    """Material ranges must be ordered and every material must have one frame material."""
    for name, material in repository.structure_materials.items():
        frame_materials = repository.frame_materials_of(name)
        report.check(
            len(frame_materials) == 1,
            ViolationCategory.MISSING_REFERENCE,
            "structure_material", name,
            f"must map to exactly one `frame_material`, got {len(frame_materials)}",
        )
        for quantity in ("density_kg_m3", "specific_heat_capacity_J_kgK", "thermal_conductivity_W_mK"):
            low = getattr(material, f"minimum_{quantity}")
            high = getattr(material, f"maximum_{quantity}")
            if _is_real(low) and _is_real(high):
                mean = (low + high) / 2
                report.check(
                    low <= mean <= high and low >= 0,
                    ViolationCategory.IMPLAUSIBLE_VALUE,
                    "structure_material", name,
                    f"`{quantity}` range must satisfy 0 <= min <= max, got [{low}, {high}]",
                )


def check_layer_records(repository: BuildingStockRepository, report: IntegrityReport) -> None:
    """Layer parameters must be defined and physically sensible."""
    entity = "source__structure__layer_id__structure_material"
    for key, record in repository.layers.items():
        number = record.layer_number
        report.check(
            _is_real(number) and float(number).is_integer(),
            ViolationCategory.PARAMETER_TYPE, entity, key,
            f"`layer_number` must be an integer, got {number!r}",
        )
        report.check(
            _is_text(record.layer_tag) and LayerTag.parse(record.layer_tag).value == record.layer_tag.strip(),
            ViolationCategory.PARAMETER_TYPE, entity, key,
            f"unknown `layer_tag` {record.layer_tag!r}",
        )
        report.check(
            _is_real(record.layer_weight) and 0 <= record.layer_weight <= 1,
            ViolationCategory.IMPLAUSIBLE_VALUE, entity, key,
            f"`layer_weight` must be 0 <= number <= 1, got {record.layer_weight!r}",
        )
        minimum = record.layer_minimum_thickness_mm
        report.check(
            _is_real(minimum) and minimum >= 0,
            ViolationCategory.IMPLAUSIBLE_VALUE, entity, key,
            f"`layer_minimum_thickness_mm` must be a number >= 0, got {minimum!r}",
        )
        load_bearing = record.layer_load_bearing_thickness_mm
        if load_bearing is not None:
            report.check(
                _is_real(load_bearing) and (not _is_real(minimum) or load_bearing >= minimum),
                ViolationCategory.IMPLAUSIBLE_VALUE, entity, key,
                f"`layer_load_bearing_thickness_mm` must be >= `layer_minimum_thickness_mm`, "
                f"got {load_bearing!r} < {minimum!r}",
            )


def _layer_number(record: LayerRecord):
    if _is_real(record.layer_number) and float(record.layer_number).is_integer():
        return int(record.layer_number)
    return None


def check_structure_layers(repository: BuildingStockRepository, report: IntegrityReport) -> None:
    """
    Shape rules of the structural layers of every `(source, structure)`.

    Layer numbers must be continuous. Structures in use must also have one
    structure type, overlapping layers with weights summing to one and
    identical thicknesses, a load-bearing structure or thermal insulation at
    layer zero, a single innermost interior finish, and at most one outermost
    exterior finish, crawl space or ground layer.
    """
    entity = "source__structure"
    pairs = list(repository.design_U_values)
    pairs += [
        (src, struct) for (src, struct, _, _) in repository.layers
        if (src, struct) not in repository.design_U_values
    ]
    for src, struct in dict.fromkeys(pairs):
        key = (src, struct)
        records = repository.layer_records(src, struct)
        numbered = [(_layer_number(r), r) for r in records]
        if any(n is None for n, _ in numbered):
            continue  # reported by `check_layer_records`
        numbered.sort(key=lambda item: item[0])
        numbers = sorted({n for n, _ in numbered})

        report.check(
            all(0 <= b - a <= 1 for a, b in zip(numbers, numbers[1:])),
            ViolationCategory.LAYER_SHAPE, entity, key,
            f"`layer_number`s must be continuous, got {numbers}",
        )

        total_weight = sum(
            w for w in repository.building_type_weights_of(src, struct).values() if _is_real(w)
        )
        if total_weight <= 0:
            continue

        structure_types = repository.structure_types_of(struct)
        report.check(
            len(structure_types) == 1,
            ViolationCategory.MISSING_REFERENCE, entity, key,
            f"`{struct}` must be connected to exactly one `structure_type`, got {len(structure_types)}",
        )
        if not numbered:
            report.add(ViolationCategory.LAYER_SHAPE, entity, key, "no structural layers")
            continue

        for number in numbers:
            overlap = [r for n, r in numbered if n == number]
            weights = [r.layer_weight for r in overlap]
            report.check(
                all(_is_real(w) for w in weights)
                and math.isclose(sum(weights), 1.0, abs_tol=WEIGHT_TOLERANCE),
                ViolationCategory.WEIGHT_SUM, entity, key,
                f"`layer_weight`s of layer number {number} must sum up to 1, got {weights}",
            )
            report.check(
                len({r.layer_minimum_thickness_mm for r in overlap}) == 1,
                ViolationCategory.LAYER_SHAPE, entity, key,
                f"overlapping layers at {number} must have identical `layer_minimum_thickness_mm`",
            )
            report.check(
                len({r.layer_load_bearing_thickness_mm for r in overlap}) == 1,
                ViolationCategory.LAYER_SHAPE, entity, key,
                f"overlapping layers at {number} must have identical `layer_load_bearing_thickness_mm`",
            )

        tags = [LayerTag.parse(r.layer_tag) for _, r in numbered]
        zero_tags = [LayerTag.parse(r.layer_tag) for n, r in numbered if n == 0]
        report.check(
            any(tag in ZERO_LAYER_TAGS for tag in zero_tags),
            ViolationCategory.LAYER_SHAPE, entity, key,
            "layer number 0 must include a load-bearing structure or thermal insulation",
        )
        report.check(
            LayerTag.LOAD_BEARING in tags,
            ViolationCategory.LAYER_SHAPE, entity, key,
            "no load-bearing structure layer",
        )
        report.check(
            tags[0] in INNER_TAGS,
            ViolationCategory.LAYER_SHAPE, entity, key,
            f"innermost layer must be an interior finish, got `{tags[0].value}`",
        )
        report.check(
            sum(tag in INNER_TAGS for tag in tags) == 1,
            ViolationCategory.LAYER_SHAPE, entity, key,
            "must include exactly one interior finish layer",
        )
        report.check(
            tags[-1] in OUTER_TAGS,
            ViolationCategory.LAYER_SHAPE, entity, key,
            f"outermost layer must be an exterior finish, crawl space or ground, got `{tags[-1].value}`",
        )
        report.check(
            sum(tag in OUTER_TAGS for tag in tags) <= 1,
            ViolationCategory.LAYER_SHAPE, entity, key,
            "must include at most one exterior finish, crawl space or ground layer",
        )


def check_frame_material_shares(repository: BuildingStockRepository, report: IntegrityReport) -> None:
    """Frame material shares must be within [0, 1] and sum up to one per building type and location."""
    entity = "building_type__location_id__frame_material"
    totals: Dict[Tuple[str, str], float] = {}
    for key, share in repository.frame_material_shares.items():
        valid = report.check(
            _is_real(share) and 0 <= share <= 1,
            ViolationCategory.IMPLAUSIBLE_VALUE, entity, key,
            f"`share` must be 0 <= number <= 1, got {share!r}",
        )
        building_type, location_id, _ = key
        totals[(building_type, location_id)] = (
            totals.get((building_type, location_id), 0.0) + (share if valid else 0.0)
        )
    for key, total in totals.items():
        report.check(
            math.isclose(total, 1.0, abs_tol=WEIGHT_TOLERANCE),
            ViolationCategory.WEIGHT_SUM, entity, key,
            f"frame material shares must sum up to 1, got {total}",
        )


def check_statistical_relationships(repository: BuildingStockRepository, report: IntegrityReport) -> None:
    """
    Building stock rows must have matching floor areas and frame material shares.

    Every `(building_type, location_id, building_period)` of the building stock
    needs an average floor area, and every `(building_type, location_id)` of the
    building stock or of the floor areas needs frame material shares.
    """
    floor_area_keys = set(repository.average_floor_areas)
    floor_area_locations = {(bt, lid) for bt, lid, _ in floor_area_keys}
    share_locations = {(bt, lid) for bt, lid, _ in repository.frame_material_shares}

    entity = "building_stock__building_type__building_period__location_id__heat_source"
    for key in repository.building_stock_records:
        _, building_type, building_period, location_id, _ = key
        report.check(
            (building_type, location_id, building_period) in floor_area_keys,
            ViolationCategory.MISSING_REFERENCE, entity, key,
            f"`{building_type}:{location_id}:{building_period}` not found in "
            f"`building_type__location_id__building_period`",
        )
        report.check(
            (building_type, location_id) in share_locations,
            ViolationCategory.MISSING_REFERENCE, entity, key,
            f"`{building_type}:{location_id}` not found in `building_type__location_id__frame_material`",
        )

    entity = "building_type__location_id__building_period"
    for key in repository.average_floor_areas:
        building_type, location_id, _ = key
        report.check(
            (building_type, location_id) in share_locations,
            ViolationCategory.MISSING_REFERENCE, entity, key,
            f"`{building_type}:{location_id}` not found in `building_type__location_id__frame_material`",
        )

    entity = "building_type__location_id__frame_material"
    for key in repository.frame_material_shares:
        building_type, location_id, _ = key
        report.check(
            (building_type, location_id) in floor_area_locations,
            ViolationCategory.MISSING_REFERENCE, entity, key,
            f"`{building_type}:{location_id}` not found in `building_type__location_id__building_period`",
        )


CHECKS: List[Callable[[BuildingStockRepository, IntegrityReport], None]] = [
    check_object_usage,
    check_references,
    check_parameter_types,
    check_materials,
    check_layer_records,
    check_structure_layers,
    check_frame_material_shares,
    check_statistical_relationships,
]


def validate_repository(
    repository: BuildingStockRepository,
    checks: List[Callable[[BuildingStockRepository, IntegrityReport], None]] = None,
) -> IntegrityReport:
    """
    Run the integrity checks on `repository`.

    Returns:
        IntegrityReport with all violations found
    """
    report = IntegrityReport()
    for check in checks or CHECKS:
        check(repository, report)
        report.checks_run.append(check.__name__)
    logger.debug(f"Ran {len(report.checks_run)} integrity checks, {len(report)} violations")
    return report
