"""Partition a bar sequence into named sections at its repeat barlines.

Repeat markers are read from `BarSlot.bar_type`:

- ``repeat_start``: a repeat opens at the start of this bar.
- ``repeat_end``: a repeat closes at the end of this bar.
- ``repeat_both``: the bar is a repeat on its own (opens at its start, closes
  at its end). A `:|:` barline is just a ``repeat_end`` on the bar before it,
  since a closing always starts the next section.

Bars before the first opening are the ``intro``. The first closing ends
``main``; any later section is ``section<n>`` where n is its 1-based position
in the piece. Bars after the last closing form the ``coda`` when they are
shorter than ``main``, otherwise the ``outro``.
"""

import dataclasses
import logging
import typing

import scorecycle.bars


logger = logging.getLogger(__name__)


INTRO = "intro"
MAIN = "main"
CODA = "coda"
OUTRO = "outro"


@dataclasses.dataclass(frozen=True)
class Section:

	"""
	A named, contiguous run of bars covering positions ``start`` (inclusive) to ``stop`` (exclusive).
	"""

	name: str
	start: int
	stop: int

	@property
	def length (self) -> int:

		"""Number of bars in the section."""

		return self.stop - self.start


def detect_sections (bars: typing.Sequence[scorecycle.bars.BarSlot]) -> typing.Optional[typing.List[Section]]:

	"""Derive sections from the repeat markers of one voice.

	The result is a partition of ``range(len(bars))``: consecutive, without
	gaps or overlaps, every section at least one bar long.

	Returns:
		The sections in order, or None when the voice has no repeat closing
		(nothing worth naming).

	Example:
		```python
		# markers: bar 1 repeat_start, bar 4 repeat_end, six bars in total
		[(s.name, s.start, s.stop) for s in detect_sections(bars)]
		# → [("intro", 0, 1), ("main", 1, 5), ("coda", 5, 6)]
		```
	"""

	sections: typing.List[Section] = []
	start = 0
	main_length = 0

	for position, bar in enumerate(bars):

		if bar.bar_type in (scorecycle.bars.REPEAT_START, scorecycle.bars.REPEAT_BOTH) and position > start:
			name = INTRO if not sections else f"section{len(sections) + 1}"
			sections.append(Section(name=name, start=start, stop=position))
			start = position

		if bar.bar_type in (scorecycle.bars.REPEAT_END, scorecycle.bars.REPEAT_BOTH):

			if main_length:
				name = f"section{len(sections) + 1}"
			else:
				name = MAIN
				main_length = position + 1 - start

			sections.append(Section(name=name, start=start, stop=position + 1))
			start = position + 1

	if not main_length:
		return None

	if start < len(bars):
		name = CODA if len(bars) - start < main_length else OUTRO
		sections.append(Section(name=name, start=start, stop=len(bars)))

	return sections


def shared_sections (voices: typing.Sequence[typing.Sequence[scorecycle.bars.BarSlot]]) -> typing.Optional[typing.List[Section]]:

	"""Return the section partition every voice agrees on, or None.

	Sections are all-or-nothing for a piece: if the voices differ in bar count
	or in where their sections fall, none are used.
	"""

	if not voices:
		return None

	if len({len(bars) for bars in voices}) != 1:
		logger.debug("Voices differ in bar count; sections disabled")
		return None

	first = detect_sections(voices[0])

	if first is None:
		return None

	for index, bars in enumerate(voices[1:], start=1):
		if detect_sections(bars) != first:
			logger.info(f"Voice {index} repeats disagree with voice 0; sections disabled")
			return None

	return first
