from dataclasses import dataclass
from enum import IntEnum


# ===================================================================
#
#           Parameter Space of the Clustering Algorithm
#
# This module holds the static catalog of tunable parameters. Each
# parameter has an admissible range and a start value that seeds the
# search. The catalog is built once at import time, validated, and is
# read-only afterwards, so worker processes and threads can share it.
#
# ===================================================================

class ParamId(IntEnum):
    """Identifier of a tunable parameter; also its index in the catalog."""
    CRITICAL_DISTANCE_EE = 0
    CRITICAL_DISTANCE_FH = 1
    CRITICAL_DISTANCE_BH = 2
    ASSIGNMENT_DISTANCE_EE = 3
    ASSIGNMENT_DISTANCE_FH = 4
    ASSIGNMENT_DISTANCE_BH = 5
    DELTA_C_EE = 6
    DELTA_C_FH = 7
    DELTA_C_BH = 8
    KAPPA = 9
    ENERGY_THRESHOLD = 10
    MATCHING_DISTANCE = 11
    KERNEL = 12


@dataclass(frozen=True)
class ParameterDescriptor:
    """
    Bounds, start value and display title of one tunable parameter.

    The title doubles as the key under which the parameter is written into
    the benchmark's configuration file.

    Raises:
        ValueError: If min <= start <= max does not hold.
    """
    id: ParamId
    title: str
    min: float
    max: float
    start: float

    def __post_init__(self):
        if not self.min <= self.start <= self.max:
            raise ValueError(
                f"Parameter '{self.title}' violates min <= start <= max "
                f"({self.min} <= {self.start} <= {self.max})"
            )

    @property
    def span(self) -> float:
        return self.max - self.min

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max


def validate_catalog(catalog) -> None:
    """
    Checks that every descriptor sits at the position given by its id and
    that the catalog covers every ParamId exactly once.

    Raises:
        ValueError: If the catalog is misaligned or incomplete.
    """
    if len(catalog) != len(ParamId):
        raise ValueError(f"Catalog has {len(catalog)} entries, expected {len(ParamId)}")
    for position, descriptor in enumerate(catalog):
        if descriptor.id != position:
            raise ValueError(
                f"Descriptor '{descriptor.title}' has id {int(descriptor.id)} "
                f"but sits at position {position}"
            )
    titles = [d.title for d in catalog]
    if len(set(titles)) != len(titles):
        raise ValueError("Parameter titles must be unique")


# --- Parameter Catalog ---
# Distances are given per detector section: EE (electromagnetic endcap),
# FH (front hadronic) and BH (back hadronic).
PARAMETERS = (
    # Below 2.0 (FH) and 5.0 (BH) the algorithm finds no clusters at all.
    ParameterDescriptor(ParamId.CRITICAL_DISTANCE_EE, "critDistEE", 0.0, 20.0, 2.0),
    ParameterDescriptor(ParamId.CRITICAL_DISTANCE_FH, "critDistFH", 2.0, 30.0, 2.0),
    ParameterDescriptor(ParamId.CRITICAL_DISTANCE_BH, "critDistBH", 5.0, 50.0, 5.0),
    ParameterDescriptor(ParamId.ASSIGNMENT_DISTANCE_EE, "assignDistEE", 0.0, 20.0, 2.0),
    ParameterDescriptor(ParamId.ASSIGNMENT_DISTANCE_FH, "assignDistFH", 2.0, 30.0, 2.0),
    ParameterDescriptor(ParamId.ASSIGNMENT_DISTANCE_BH, "assignDistBH", 5.0, 50.0, 5.0),
    # Too small a delta and no clusters are found, above ~30 problems start.
    ParameterDescriptor(ParamId.DELTA_C_EE, "deltaEE", 0.01, 30.0, 2.0),
    ParameterDescriptor(ParamId.DELTA_C_FH, "deltaFH", 0.01, 30.0, 2.0),
    ParameterDescriptor(ParamId.DELTA_C_BH, "deltaBH", 0.01, 40.0, 5.0),
    # The algorithm does not work below 1.0 and nearly always fails above 150.
    ParameterDescriptor(ParamId.KAPPA, "kappa", 1.0, 150.0, 9.0),
    ParameterDescriptor(ParamId.ENERGY_THRESHOLD, "eMin", 2.0, 10.0, 3.0),
    ParameterDescriptor(ParamId.MATCHING_DISTANCE, "matchingDist", 0.0, 30.0, 5.0),
    # Kernel index: 0 - step, 1 - gaus, 2 - exp. The benchmark maps the
    # continuous value onto one of the three kernels.
    ParameterDescriptor(ParamId.KERNEL, "kernel", -0.49, 2.49, 0.0),
)

validate_catalog(PARAMETERS)

N_PARAMS = len(PARAMETERS)


def get_descriptor(param_id) -> ParameterDescriptor:
    """Returns the descriptor of a parameter given its id (ParamId or int)."""
    return PARAMETERS[ParamId(param_id)]


def get_descriptor_by_title(title: str) -> ParameterDescriptor:
    """
    Returns the descriptor whose display title matches exactly.

    Raises:
        KeyError: If no parameter has this title.
    """
    for descriptor in PARAMETERS:
        if descriptor.title == title:
            return descriptor
    raise KeyError(f"Unknown parameter title: {title}")
