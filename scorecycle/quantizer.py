"""Turn the durations inside one bar into small proportional integers.

Two modes are available:

- ``"minimal"``: the shortest duration in the bar becomes the quantum (split
  into 2, 3, 4, 6 or 8 when a dotted or tuplet value needs it), every
  duration is rounded to a count of quanta and the counts are divided by
  their GCD. Independent of tempo; suited to sources with imperfect timing.
- ``"fixed"``: durations are counted in meter beats and multiplied by the
  smallest integer (up to 64) that makes every one of them whole. Suited to
  sources whose timing is already an exact fraction of a beat (MIDI ticks,
  MusicXML divisions).

Either way the units of a bar end up coprime.
"""

import functools
import logging
import math
import typing

import scorecycle.bars


logger = logging.getLogger(__name__)


MINIMAL = "minimal"
FIXED = "fixed"
QUANTIZE_MODES = (MINIMAL, FIXED)

DEFAULT_TOLERANCE = 0.01
DEFAULT_MAX_SUBDIVISION = 8
DEFAULT_MAX_MULTIPLIER = 64

# Splits of the shortest value: binary, dotted (2) and tuplet (3) rhythms.
SUBDIVISIONS = (1, 2, 3, 4, 6, 8)

_EPSILON = 1e-9


def round_half_up (value: float) -> int:

	"""Round to the nearest integer, halves going up (2.5 → 3)."""

	return int(math.floor(value + 0.5))


def reduce_units (units: typing.Sequence[int]) -> typing.List[int]:

	"""Divide every unit by the GCD of all of them.

	Reduced input is returned unchanged, so the function is a fixed point on
	its own output.

	Example:
		```python
		reduce_units([2, 2, 4])   # → [1, 1, 2]
		reduce_units([1, 1, 2])   # → [1, 1, 2]
		```
	"""

	if not units:
		return []

	divisor = functools.reduce(math.gcd, units)

	if divisor <= 1:
		return list(units)

	return [unit // divisor for unit in units]


def _subdivision (durations: typing.Sequence[float], minimum: float, tolerance: float, max_subdivision: int) -> int:

	"""Return the smallest musical split of the minimum duration that expresses every duration.

	A duration fits when it lies within ``tolerance`` of a whole number of
	quanta, measured relative to the duration itself, so finer splits get no
	extra slack. Only dotted, tuplet and binary splits are tried; anything
	else is performance jitter and is rounded to the nearest multiple of the
	minimum.
	"""

	for subdivision in SUBDIVISIONS:

		if subdivision > max_subdivision:
			break

		fits = True

		for duration in durations:
			relative = duration / minimum
			nearest = round_half_up(relative * subdivision) / subdivision
			if abs(relative - nearest) > tolerance * relative:
				fits = False
				break

		if fits:
			return subdivision

	logger.debug(f"No subdivision up to {max_subdivision} fits {list(durations)}; rounding to the minimum")

	return 1


def quantize_durations (
	durations: typing.Sequence[float],
	tolerance: float = DEFAULT_TOLERANCE,
	max_subdivision: int = DEFAULT_MAX_SUBDIVISION
) -> typing.Tuple[typing.List[int], float]:

	"""Convert a bar's durations into the smallest integers with the same proportions.

	Parameters:
		durations: Durations in any measure (milliseconds, beats, units).
		tolerance: Accepted relative error when matching a duration to a whole
			number of quanta (0.01 = 1%).
		max_subdivision: Largest split of the shortest duration to try (from ``SUBDIVISIONS``).

	Returns:
		``(units, unit)``: one positive integer per input duration, and the
		size of one unit in the input measure (0.0 when no duration is positive).

	Example:
		```python
		quantize_durations([500, 500, 1000])   # → ([1, 1, 2], 500.0)
		quantize_durations([1000, 1500])       # → ([2, 3], 500.0)
		quantize_durations([1, 1, 2])          # → ([1, 1, 2], 1.0)
		```
	"""

	positive = [d for d in durations if d > _EPSILON]

	if not positive:
		return [1] * len(durations), 0.0

	minimum = min(positive)
	subdivision = _subdivision(positive, minimum, tolerance, max_subdivision)
	quantum = minimum / subdivision

	raw = [max(1, round_half_up(d / quantum)) if d > _EPSILON else 1 for d in durations]
	divisor = functools.reduce(math.gcd, raw)

	return [unit // divisor for unit in raw], quantum * divisor


def fixed_multiplier (
	beat_values: typing.Iterable[float],
	max_multiplier: int = DEFAULT_MAX_MULTIPLIER,
	tolerance: float = DEFAULT_TOLERANCE
) -> int:

	"""Return the smallest integer that makes every value whole (within an absolute tolerance).

	Falls back to ``max_multiplier`` when nothing smaller works.

	Example:
		```python
		fixed_multiplier([1.0, 0.5, 0.25])   # → 4
		fixed_multiplier([1 / 3, 2 / 3])     # → 3
		```
	"""

	values = list(beat_values)

	for multiplier in range(1, max_multiplier + 1):
		if all(abs(v * multiplier - round_half_up(v * multiplier)) <= tolerance for v in values):
			return multiplier

	logger.debug(f"No multiplier up to {max_multiplier} makes all durations whole")

	return max_multiplier


def quantize_slot (
	slot: scorecycle.bars.BarSlot,
	bar_length_ms: float,
	mode: str = MINIMAL,
	meter_numerator: int = 4,
	tolerance: float = DEFAULT_TOLERANCE,
	max_subdivision: int = DEFAULT_MAX_SUBDIVISION,
	max_multiplier: int = DEFAULT_MAX_MULTIPLIER
) -> None:

	"""Give every fragment of a bar its integer duration and offset, in place.

	Also sets the slot's ``unit_ms`` and ``target_units`` (the bar length in
	the same units).

	Raises:
		ValueError: If ``mode`` is not ``"minimal"`` or ``"fixed"``.
	"""

	if not slot.fragments:
		return

	durations = [fragment.duration_ms for fragment in slot.fragments]

	if mode == MINIMAL:
		units, unit_ms = quantize_durations(durations, tolerance, max_subdivision)

	elif mode == FIXED:
		beat_ms = bar_length_ms / meter_numerator
		observed = [d / beat_ms for d in durations]
		observed += [fragment.offset_ms / beat_ms for fragment in slot.fragments]

		multiplier = fixed_multiplier(observed, max_multiplier, tolerance)

		raw = [max(1, round_half_up(d / beat_ms * multiplier)) for d in durations]
		divisor = functools.reduce(math.gcd, raw)

		units = [unit // divisor for unit in raw]
		unit_ms = beat_ms / multiplier * divisor

	else:
		raise ValueError(f"Unknown quantize mode: {mode!r}. Expected one of {QUANTIZE_MODES}")

	if unit_ms <= 0:
		unit_ms = bar_length_ms

	for fragment, unit in zip(slot.fragments, units):
		fragment.units = unit
		fragment.offset_units = round_half_up(fragment.offset_ms / unit_ms)

	slot.unit_ms = unit_ms
	slot.target_units = round_half_up(bar_length_ms / unit_ms)
