"""Collapse simultaneous notes of a quantized bar into chord tokens.

Two grouping keys are supported, because sources disagree on what a chord is:

- ``"group"``: notes sharing a source chord id (an ABC chord, a MusicXML
  ``<chord/>`` run) form one chord. Notes without an id fall back to timing.
- ``"timing"``: notes with the same quantized offset and duration form one
  chord. The only option for sources without chord ids (MIDI), and the one
  that can merge two voices' notes that merely line up.
"""

import dataclasses
import logging
import typing

import scorecycle.bars
import scorecycle.quantizer


logger = logging.getLogger(__name__)


GROUP = "group"
TIMING = "timing"
CHORD_MODES = (GROUP, TIMING)


@dataclasses.dataclass
class _Group:

	start: int
	units: int
	pitches: typing.Set[int] = dataclasses.field(default_factory=set)
	rest: bool = False
	reach: int = 0

	@property
	def end (self) -> int:

		return self.start + self.units


def _group_key (fragment: scorecycle.bars.Fragment, mode: str) -> typing.Tuple:

	if fragment.is_rest:
		return ("rest", fragment.offset_units, fragment.units)

	if mode == GROUP and fragment.chord_group is not None:
		return ("chord", fragment.chord_group)

	return ("timing", fragment.offset_units, fragment.units)


def _collect (fragments: typing.Iterable[scorecycle.bars.Fragment], mode: str) -> typing.List[_Group]:

	"""Merge fragments sharing a key; a chord spans its earliest start and its longest member."""

	groups: typing.Dict[typing.Tuple, _Group] = {}

	for fragment in fragments:

		key = _group_key(fragment, mode)
		group = groups.get(key)

		if group is None:
			group = _Group(start=fragment.offset_units, units=fragment.units, rest=fragment.is_rest)
			groups[key] = group
		else:
			end = max(group.end, fragment.offset_units + fragment.units)
			group.start = min(group.start, fragment.offset_units)
			group.units = end - group.start

		if not fragment.is_rest:
			group.pitches.add(fragment.pitch)

	for group in groups.values():
		group.reach = group.end

	return sorted(groups.values(), key=lambda g: (g.start, g.rest, g.units, sorted(g.pitches)))


def _lay_out (groups: typing.Iterable[_Group]) -> typing.List[_Group]:

	"""Arrange groups into one left-to-right line without overlaps."""

	line: typing.List[_Group] = []

	for group in groups:

		while line and group.start < line[-1].end:

			last = line[-1]

			if group.rest:
				# Silence under a sounding token only keeps the part that sticks out.
				if group.end <= last.end:
					break
				group.units = group.end - last.end
				group.start = last.end

			elif last.rest:
				if group.start <= last.start:
					line.pop()
					continue
				last.units = group.start - last.start

			elif group.start <= last.start:
				# A later note starting inside the chord cuts it short again.
				last.pitches |= group.pitches
				last.units = max(last.units, group.units)
				last.reach = max(last.reach, group.reach)
				break

			else:
				last.units = group.start - last.start

		else:
			if group.rest and line and line[-1].rest and line[-1].end == group.start:
				line[-1].units += group.units
			else:
				line.append(group)

	return _hold_through_gaps(line)


def _hold_through_gaps (line: typing.List[_Group]) -> typing.List[_Group]:

	"""Keep a cut-off note sounding after the notes laid over it end.

	A short note placed over a held one ends before the held note does. Until
	the held note stops, the token before the hole is stretched over it and
	written rests (another staff's silence) are absorbed.
	"""

	held: typing.List[_Group] = []
	sounding = 0

	for group in line:

		if held and not held[-1].rest:

			last = held[-1]
			cover = min(group.start if not group.rest else group.end, sounding)

			if cover > last.end:
				last.units = cover - last.start

			if group.rest and last.end > group.start:
				if last.end >= group.end:
					continue
				group.units = group.end - last.end
				group.start = last.end

		if not group.rest:
			sounding = max(sounding, group.reach)

		held.append(group)

	if held and not held[-1].rest and sounding > held[-1].end:
		held[-1].units = sounding - held[-1].start

	return held


def group_chords (slot: scorecycle.bars.BarSlot, mode: str = TIMING) -> typing.Tuple[scorecycle.bars.Token, ...]:

	"""Turn a quantized bar's fragments into its token sequence.

	Notes sharing a key become one `Note` whose pitches are sorted ascending
	with duplicates removed; the chord lasts as long as its longest member, so
	the result does not depend on the order of the fragments. The tokens are
	then laid out left to right: a note starting inside the previous token cuts
	it short, notes starting together merge into one chord, a note cut short by
	a shorter one is held again once that one ends, rests hidden under
	sounding notes disappear and touching rests merge. Finally the units are
	GCD-reduced again and the slot's ``target_units`` and ``unit_ms`` follow.

	Parameters:
		slot: A bar whose fragments carry ``units`` and ``offset_units``.
		mode: ``"group"`` or ``"timing"`` (see module docstring).

	Returns:
		The tokens, also stored on ``slot.tokens``.

	Raises:
		ValueError: If ``mode`` is unknown.

	Example:
		```python
		# two fragments at offset 0, one unit long, pitches 4 and 0
		group_chords(slot)   # → (Note(pitches=(0, 4), units=1),)
		```
	"""

	if mode not in CHORD_MODES:
		raise ValueError(f"Unknown chord mode: {mode!r}. Expected one of {CHORD_MODES}")

	line = _lay_out(_collect(slot.fragments, mode))
	line = [group for group in line if group.units > 0]

	if not line:
		slot.tokens = ()
		return slot.tokens

	before = [group.units for group in line]
	after = scorecycle.quantizer.reduce_units(before)

	if after != before:
		divisor = before[0] // after[0]
		slot.unit_ms *= divisor
		slot.target_units = scorecycle.quantizer.round_half_up(slot.target_units / divisor)

	tokens: typing.List[scorecycle.bars.Token] = []

	for group, units in zip(line, after):
		if group.rest:
			tokens.append(scorecycle.bars.Rest(units=units))
		else:
			tokens.append(scorecycle.bars.Note(pitches=tuple(sorted(group.pitches)), units=units))

	slot.tokens = tuple(tokens)

	logger.debug(f"Bar {slot.index} (voice {slot.voice}): {scorecycle.bars.bar_key(slot.tokens)}")

	return slot.tokens
