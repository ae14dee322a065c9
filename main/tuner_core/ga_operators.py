import logging
from enum import IntEnum

import numpy as np

from .chromosome import Chromosome, reverse_bit


logger = logging.getLogger(__name__)


# ===================================================================
#
#           Genetic Operators for the Clustering Parameter Tuner
#
# This module contains the recombination and mutation operators that
# act on encoded chromosomes. Every operator works on the flattened bit
# view of its parents, so each offspring bit is copied from one of the
# two parents and no bit is ever invented. Which parents are mated and
# how many bits are mutated is decided by the caller.
#
# ===================================================================

class CrossoverPolicy(IntEnum):
    """Selects how two parent chromosomes are recombined."""
    UNIFORM = 0             # each bit is taken from either parent with equal chance
    SINGLE_POINT = 1        # one cut anywhere in the chromosome, may split a parameter
    FIXED_SINGLE_POINT = 2  # one cut on a parameter boundary, parameters are exchanged intact
    MULTI_POINT = 3         # one cut inside every parameter field

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @classmethod
    def from_name(cls, name: str) -> "CrossoverPolicy":
        """
        Looks a policy up by name, ignoring case, spaces and underscores,
        so "FixedSinglePoint", "fixed_single_point" and "Fixed single point"
        all resolve to FIXED_SINGLE_POINT.

        Raises:
            ValueError: If no policy matches.
        """
        wanted = name.replace(" ", "").replace("_", "").lower()
        for policy in cls:
            if policy.name.replace("_", "").lower() == wanted:
                return policy
        raise ValueError(f"Unknown crossover policy: {name}")


_DISPLAY_NAMES = {
    CrossoverPolicy.UNIFORM: "Uniform",
    CrossoverPolicy.SINGLE_POINT: "Single point",
    CrossoverPolicy.FIXED_SINGLE_POINT: "Fixed single point",
    CrossoverPolicy.MULTI_POINT: "Multi point",
}


def _check_parents(parent_a: Chromosome, parent_b: Chromosome) -> None:
    if parent_a.bits_per_field != parent_b.bits_per_field or parent_a.n_fields != parent_b.n_fields:
        raise ValueError(
            f"Parents differ in shape: {parent_a.n_fields}x{parent_a.bits_per_field} "
            f"vs {parent_b.n_fields}x{parent_b.bits_per_field} bits"
        )


def crossover_uniform(parent_a, parent_b, rng, mask=None):
    """
    Uniform crossover: every bit is taken from parent A or parent B with
    equal probability; the second child receives the complementary bits.

    Args:
        parent_a (Chromosome): The first parent.
        parent_b (Chromosome): The second parent.
        rng (RandomContext): Random source.
        mask (array-like of bool, optional): Forces the choice; True takes
            the bit from parent A for the first child.

    Returns:
        tuple[Chromosome, Chromosome]: The two offspring.
    """
    _check_parents(parent_a, parent_b)
    bits_a, bits_b = parent_a.to_bits(), parent_b.to_bits()

    if mask is None:
        mask = rng.rand_bits(bits_a.size).astype(bool)
    else:
        mask = np.asarray(mask, dtype=bool)
        if mask.shape != bits_a.shape:
            raise ValueError(f"Mask has shape {mask.shape}, expected {bits_a.shape}")

    width = parent_a.bits_per_field
    child_a = Chromosome.from_bits(np.where(mask, bits_a, bits_b), width)
    child_b = Chromosome.from_bits(np.where(mask, bits_b, bits_a), width)
    return child_a, child_b


def crossover_single_point(parent_a, parent_b, rng, cut=None):
    """
    Single point crossover over the whole chromosome.

    One cut position is chosen in [0, n_bits]. The first child takes the bits
    before the cut from parent A and the rest from parent B; the second child
    is the mirror image. The cut ignores parameter boundaries. A cut at 0 or at
    n_bits exchanges nothing and the children are copies of the parents.

    Args:
        parent_a (Chromosome): The first parent.
        parent_b (Chromosome): The second parent.
        rng (RandomContext): Random source.
        cut (int, optional): Forces the cut position.

    Returns:
        tuple[Chromosome, Chromosome]: The two offspring.
    """
    _check_parents(parent_a, parent_b)
    n_bits = parent_a.n_bits
    if cut is None:
        cut = rng.rand_int(0, n_bits)
    if not 0 <= cut <= n_bits:
        raise ValueError(f"Cut position {cut} outside [0, {n_bits}]")

    bits_a, bits_b = parent_a.to_bits(), parent_b.to_bits()
    width = parent_a.bits_per_field
    child_a = Chromosome.from_bits(np.concatenate([bits_a[:cut], bits_b[cut:]]), width)
    child_b = Chromosome.from_bits(np.concatenate([bits_b[:cut], bits_a[cut:]]), width)
    return child_a, child_b


def crossover_fixed_single_point(parent_a, parent_b, rng, cut_field=None):
    """
    Single point crossover whose cut falls on a parameter boundary.

    The cut is chosen among the n_fields + 1 field boundaries, so every
    parameter of a child comes intact from one parent. Boundaries 0 and
    n_fields leave the parents unchanged.

    Args:
        cut_field (int, optional): Forces the boundary; the cut is placed
            before field `cut_field`.
    """
    _check_parents(parent_a, parent_b)
    if cut_field is None:
        cut_field = rng.rand_int(0, parent_a.n_fields)
    if not 0 <= cut_field <= parent_a.n_fields:
        raise ValueError(f"Cut boundary {cut_field} outside [0, {parent_a.n_fields}]")
    return crossover_single_point(parent_a, parent_b, rng, cut=cut_field * parent_a.bits_per_field)


def crossover_multi_point(parent_a, parent_b, rng, cuts=None):
    """
    Multi point crossover with one cut inside every parameter field.

    Each field gets its own cut position in [0, bits_per_field]. Bits below the
    cut come from one parent and bits from the cut upwards from the other;
    the parent supplying the low bits alternates from field to field
    (A for even fields, B for odd fields in the first child). The second
    child is the mirror image. Cuts never cross a field boundary.

    Args:
        cuts (array-like of int, optional): Forces one cut per field.
    """
    _check_parents(parent_a, parent_b)
    n_fields, width = parent_a.n_fields, parent_a.bits_per_field

    if cuts is None:
        cuts = np.array([rng.rand_int(0, width) for _ in range(n_fields)])
    else:
        cuts = np.asarray(cuts, dtype=int)
        if cuts.shape != (n_fields,):
            raise ValueError(f"Expected {n_fields} cuts, got shape {cuts.shape}")
        if np.any((cuts < 0) | (cuts > width)):
            raise ValueError(f"Cuts must lie in [0, {width}]")

    bits_a = parent_a.to_bits().reshape(n_fields, width)
    bits_b = parent_b.to_bits().reshape(n_fields, width)

    below_cut = np.arange(width)[None, :] < cuts[:, None]
    even_field = (np.arange(n_fields) % 2 == 0)[:, None]
    take_from_a = np.where(even_field, below_cut, ~below_cut)

    child_a = Chromosome.from_bits(np.where(take_from_a, bits_a, bits_b).ravel(), width)
    child_b = Chromosome.from_bits(np.where(take_from_a, bits_b, bits_a).ravel(), width)
    return child_a, child_b


_CROSSOVER_FUNCTIONS = {
    CrossoverPolicy.UNIFORM: crossover_uniform,
    CrossoverPolicy.SINGLE_POINT: crossover_single_point,
    CrossoverPolicy.FIXED_SINGLE_POINT: crossover_fixed_single_point,
    CrossoverPolicy.MULTI_POINT: crossover_multi_point,
}


def crossover(parent_a, parent_b, policy, rng):
    """
    Recombines two parents with the given policy.

    Args:
        parent_a (Chromosome): The first parent.
        parent_b (Chromosome): The second parent.
        policy (CrossoverPolicy or str): The recombination policy.
        rng (RandomContext): Random source.

    Returns:
        tuple[Chromosome, Chromosome]: The two offspring.
    """
    if isinstance(policy, str):
        policy = CrossoverPolicy.from_name(policy)
    return _CROSSOVER_FUNCTIONS[CrossoverPolicy(policy)](parent_a, parent_b, rng)


# --- Mutation ---

def mutate_bit(chromosome, param_id, bit_pos):
    """
    Flips exactly one bit of a chromosome in place.

    Args:
        chromosome (Chromosome): The chromosome to modify.
        param_id (ParamId or int): The parameter whose field holds the bit.
        bit_pos (int): Position of the bit inside that field (0 = least significant).

    Returns:
        Chromosome: The same chromosome, for chaining.

    Raises:
        IndexError: If the parameter has no field in this chromosome.
        ValueError: If bit_pos lies outside the field.
    """
    index = int(param_id)
    if not 0 <= index < chromosome.n_fields:
        raise IndexError(f"Parameter index {index} outside chromosome with {chromosome.n_fields} fields")
    if not 0 <= bit_pos < chromosome.bits_per_field:
        raise ValueError(f"Bit position {bit_pos} outside {chromosome.bits_per_field}-bit field")

    chromosome.set_field(index, reverse_bit(chromosome.field(index), bit_pos))
    return chromosome


def apply_mutations(chromosome, rng, mutation_rate):
    """
    Flips every bit of the chromosome independently with probability
    `mutation_rate`, using mutate_bit for each flip.

    Returns:
        Chromosome: The same chromosome, mutated in place.
    """
    if not 0.0 <= mutation_rate <= 1.0:
        raise ValueError(f"mutation_rate must be in [0, 1], got {mutation_rate}")

    draws = rng.rand_unit((chromosome.n_fields, chromosome.bits_per_field))
    flips = np.argwhere(draws < mutation_rate)
    for index, bit_pos in flips:
        mutate_bit(chromosome, int(index), int(bit_pos))

    if len(flips):
        logger.debug(f"Flipped {len(flips)} bits: {chromosome.format_bits()}")
    return chromosome
