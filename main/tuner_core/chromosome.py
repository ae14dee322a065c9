import logging
import math
from typing import Dict, Mapping, Sequence, Union

import numpy as np

from . import config
from .parameters import PARAMETERS, ParameterDescriptor


logger = logging.getLogger(__name__)


# ===================================================================
#
#           Chromosome Codec for the Clustering Parameter Tuner
#
# A chromosome stores one candidate parameter vector as a sequence of
# fixed-width unsigned integer fields, one per parameter. Each field is
# the parameter's value mapped linearly from [min, max] onto
# [0, 2^width - 1]. Decoding is the inverse mapping, so a value survives
# an encode/decode round trip up to one quantization step.
#
# Bit layout of the flattened view (to_bits/from_bits): fields follow
# each other in catalog order, and inside a field bit 0 (the least
# significant bit) comes first. Global bit index = field * width + bit.
#
# ===================================================================

MAX_BITS_PER_FIELD = 32


def _resolve_width(bits_per_field):
    """Returns the field width to use and checks that it is supported."""
    if bits_per_field is None:
        bits_per_field = config.BITS_PER_FIELD
    if not 1 <= bits_per_field <= MAX_BITS_PER_FIELD:
        raise ValueError(f"bits_per_field must be in 1..{MAX_BITS_PER_FIELD}, got {bits_per_field}")
    return int(bits_per_field)


def max_field_value(bits_per_field=None) -> int:
    """Largest value a field of the given width can hold (2^width - 1)."""
    return (1 << _resolve_width(bits_per_field)) - 1


def quantization_step(descriptor: ParameterDescriptor, bits_per_field=None) -> float:
    """Distance between two neighbouring decodable values of a parameter."""
    return descriptor.span / max_field_value(bits_per_field)


def encode_value(value: float, descriptor: ParameterDescriptor, bits_per_field=None) -> int:
    """
    Maps a real parameter value onto an integer field.

    The value is scaled linearly from [descriptor.min, descriptor.max] onto
    [0, 2^width - 1] and rounded to the nearest integer. Values outside the
    bounds are clamped to the nearest bound instead of wrapping around.

    Args:
        value (float): The parameter value to encode.
        descriptor (ParameterDescriptor): Bounds of the parameter.
        bits_per_field (int, optional): Field width. Defaults to config.BITS_PER_FIELD.

    Returns:
        int: The encoded field.

    Raises:
        ValueError: If value is NaN or the width is unsupported.
    """
    top = max_field_value(bits_per_field)
    if math.isnan(value):
        raise ValueError(f"Cannot encode NaN for parameter '{descriptor.title}'")

    clamped = min(max(value, descriptor.min), descriptor.max)
    if clamped != value:
        logger.debug(f"Value {value} of '{descriptor.title}' clamped to {clamped}")

    if descriptor.span == 0:
        return 0

    field = int(round((clamped - descriptor.min) / descriptor.span * top))
    return min(max(field, 0), top)


def decode_value(field: int, descriptor: ParameterDescriptor, bits_per_field=None) -> float:
    """
    Maps an integer field back onto the parameter's [min, max] range.

    Raises:
        ValueError: If the field does not fit in the given width.
    """
    top = max_field_value(bits_per_field)
    field = int(field)
    if not 0 <= field <= top:
        raise ValueError(f"Field {field} does not fit in {_resolve_width(bits_per_field)} bits")

    value = descriptor.min + (field / top) * descriptor.span
    return min(max(value, descriptor.min), descriptor.max)


def reverse_bit(bits: int, pos: int) -> int:
    """Returns `bits` with the bit at position `pos` inverted and all others unchanged."""
    if pos < 0:
        raise ValueError(f"Bit position must be non-negative, got {pos}")
    return int(bits) ^ (1 << pos)


class Chromosome:
    """
    A candidate parameter vector encoded as fixed-width unsigned integer fields.

    Attributes:
        fields (np.ndarray): One uint64 entry per parameter, in catalog order.
        bits_per_field (int): Width of every field.
    """

    def __init__(self, fields, bits_per_field=None):
        self.bits_per_field = _resolve_width(bits_per_field)
        top = max_field_value(self.bits_per_field)

        values = [int(f) for f in fields]
        if not values:
            raise ValueError("A chromosome needs at least one field")
        for index, value in enumerate(values):
            if not 0 <= value <= top:
                raise ValueError(f"Field {index} = {value} does not fit in {self.bits_per_field} bits")

        self.fields = np.array(values, dtype=np.uint64)

    @property
    def n_fields(self) -> int:
        return int(self.fields.size)

    @property
    def n_bits(self) -> int:
        return self.n_fields * self.bits_per_field

    def field(self, index: int) -> int:
        return int(self.fields[index])

    def set_field(self, index: int, value: int) -> None:
        if not 0 <= int(value) <= max_field_value(self.bits_per_field):
            raise ValueError(f"Field value {value} does not fit in {self.bits_per_field} bits")
        self.fields[index] = np.uint64(value)

    def to_bits(self) -> np.ndarray:
        """Flattened bit view: uint8 array of length n_bits (see module header for layout)."""
        shifts = np.arange(self.bits_per_field, dtype=np.uint64)
        bits = (self.fields[:, None] >> shifts) & np.uint64(1)
        return bits.astype(np.uint8).ravel()

    @classmethod
    def from_bits(cls, bits, bits_per_field=None) -> "Chromosome":
        """Rebuilds a chromosome from its flattened bit view."""
        width = _resolve_width(bits_per_field)
        bits = np.asarray(bits)
        if bits.ndim != 1 or bits.size == 0 or bits.size % width != 0:
            raise ValueError(f"Bit array of length {bits.size} is not a whole number of {width}-bit fields")
        if np.any((bits != 0) & (bits != 1)):
            raise ValueError("Bit array may only contain zeros and ones")

        shifts = np.arange(width, dtype=np.uint64)
        matrix = bits.reshape(-1, width).astype(np.uint64)
        fields = (matrix << shifts).sum(axis=1, dtype=np.uint64)
        return cls(fields.tolist(), width)

    def copy(self) -> "Chromosome":
        return Chromosome(self.fields.tolist(), self.bits_per_field)

    def format_bits(self) -> str:
        """Fields rendered as binary strings, most significant bit first."""
        return " ".join(format(int(f), f"0{self.bits_per_field}b") for f in self.fields)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Chromosome):
            return NotImplemented
        return self.bits_per_field == other.bits_per_field and np.array_equal(self.fields, other.fields)

    __hash__ = None

    def __repr__(self) -> str:
        return f"Chromosome(fields={self.fields.tolist()}, bits_per_field={self.bits_per_field})"


def _values_in_catalog_order(values, catalog) -> list:
    if isinstance(values, Mapping):
        ordered = []
        for descriptor in catalog:
            if descriptor.id in values:
                ordered.append(values[descriptor.id])
            elif descriptor.title in values:
                ordered.append(values[descriptor.title])
            else:
                raise KeyError(f"No value given for parameter '{descriptor.title}'")
        return ordered

    values = list(values)
    if len(values) != len(catalog):
        raise ValueError(f"Expected {len(catalog)} values, got {len(values)}")
    return values


def encode_parameters(
        values: Union[Sequence[float], Mapping],
        catalog: Sequence[ParameterDescriptor] = PARAMETERS,
        bits_per_field=None) -> Chromosome:
    """
    Encodes a full parameter vector into a chromosome.

    Args:
        values: Either a sequence in catalog order, or a mapping keyed by
            ParamId or by parameter title.
        catalog: Parameter descriptors. Defaults to the module catalog.
        bits_per_field (int, optional): Field width. Defaults to config.BITS_PER_FIELD.

    Returns:
        Chromosome: The encoded candidate.
    """
    width = _resolve_width(bits_per_field)
    ordered = _values_in_catalog_order(values, catalog)
    fields = [encode_value(v, d, width) for v, d in zip(ordered, catalog)]
    return Chromosome(fields, width)


def decode_parameters(
        chromosome: Chromosome,
        catalog: Sequence[ParameterDescriptor] = PARAMETERS) -> Dict[str, float]:
    """Decodes a chromosome into {parameter title: value}, in catalog order."""
    if chromosome.n_fields != len(catalog):
        raise ValueError(f"Chromosome has {chromosome.n_fields} fields, catalog has {len(catalog)}")
    return {
        descriptor.title: decode_value(chromosome.field(i), descriptor, chromosome.bits_per_field)
        for i, descriptor in enumerate(catalog)
    }


def start_chromosome(catalog: Sequence[ParameterDescriptor] = PARAMETERS, bits_per_field=None) -> Chromosome:
    """The chromosome encoding every parameter's start value."""
    return encode_parameters([d.start for d in catalog], catalog, bits_per_field)


def random_chromosome(rng, catalog: Sequence[ParameterDescriptor] = PARAMETERS, bits_per_field=None) -> Chromosome:
    """A chromosome with each parameter drawn uniformly from its range."""
    return encode_parameters([rng.rand_double(d.min, d.max) for d in catalog], catalog, bits_per_field)
