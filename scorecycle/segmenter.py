"""Split a voice's event stream into fixed-length bars.

Notes that cross a bar line are cut into tied fragments carrying the same
pitch. How silence is handled depends on the source:

- **Timing-based** (``fill_gaps=True``): every gap between the end of the
  previous event and the next onset becomes an explicit rest. Use this when
  the source only gives sounding notes (MIDI, rendered ABC timing).
- **Score-based** (``fill_gaps=False``): only rests written in the source are
  kept. Use this when the notation already spells out its rests (MusicXML);
  filling gaps as well would produce double rests.
"""

import logging
import typing

import scorecycle.bars
import scorecycle.events


logger = logging.getLogger(__name__)


DEFAULT_TOLERANCE_MS = 1.0


ConfigurationError = scorecycle.events.ConfigurationError


class _BarScanner:

	"""
	Running bar number and open bar while one voice is being segmented.
	"""

	def __init__ (self, bar_length_ms: float, tolerance_ms: float, voice: int) -> None:

		self.bar_length_ms = bar_length_ms
		self.tolerance_ms = tolerance_ms
		self.voice = voice

		self.bar_number = 0
		self.current: typing.List[scorecycle.bars.Fragment] = []
		self.bars: typing.List[scorecycle.bars.BarSlot] = []

	@property
	def bar_start (self) -> float:

		return self.bar_number * self.bar_length_ms

	@property
	def bar_end (self) -> float:

		return (self.bar_number + 1) * self.bar_length_ms

	def close (self) -> None:

		"""Push the open bar (a full-bar rest if nothing was placed) and open the next one."""

		if not self.current:
			self.current.append(scorecycle.bars.Fragment(offset_ms=0.0, duration_ms=self.bar_length_ms))

		self.bars.append(scorecycle.bars.BarSlot(index=self.bar_number, voice=self.voice, fragments=self.current))

		self.bar_number += 1
		self.current = []

	def place (self, onset_ms: float, duration_ms: float, pitch: typing.Optional[int], chord_group: typing.Optional[typing.Hashable]) -> None:

		"""Place a note or rest, splitting it at every bar line it crosses."""

		start = onset_ms
		end = onset_ms + duration_ms

		while end - start > 0:

			while start >= self.bar_end - self.tolerance_ms:
				self.close()

			local_start = max(start, self.bar_start)

			if end > self.bar_end + self.tolerance_ms:
				local_end = self.bar_end
			else:
				local_end = min(end, self.bar_end)

			if local_end > local_start:
				self.current.append(scorecycle.bars.Fragment(
					offset_ms = local_start - self.bar_start,
					duration_ms = local_end - local_start,
					pitch = pitch,
					chord_group = chord_group
				))

			if local_end >= end or end <= self.bar_end + self.tolerance_ms:
				break

			start = self.bar_end

	def finish (self) -> typing.List[scorecycle.bars.BarSlot]:

		"""Pad and push the final bar, then return all bars."""

		if self.current:
			covered = max(fragment.end_ms for fragment in self.current)

			if self.bar_length_ms - covered > self.tolerance_ms:
				self.current.append(scorecycle.bars.Fragment(offset_ms=covered, duration_ms=self.bar_length_ms - covered))

			self.close()

		return self.bars


def _pad_pickup (bar: scorecycle.bars.BarSlot, bar_length_ms: float, tolerance_ms: float) -> None:

	"""Turn an under-filled first bar into an anacrusis: its contents move to the end behind a leading rest."""

	if not bar.fragments:
		return

	first_offset = min(fragment.offset_ms for fragment in bar.fragments)
	covered = max(fragment.end_ms for fragment in bar.fragments)
	deficit = bar_length_ms - covered

	if first_offset > tolerance_ms or deficit <= tolerance_ms:
		return

	for fragment in bar.fragments:
		fragment.offset_ms += deficit

	bar.fragments.insert(0, scorecycle.bars.Fragment(offset_ms=0.0, duration_ms=deficit))
	bar.pickup = True

	logger.debug(f"Padded pickup bar with a leading {deficit:.1f}ms rest")


def segment_bars (
	events: typing.Sequence[scorecycle.events.Event],
	bar_length_ms: float,
	fill_gaps: bool = True,
	tolerance_ms: float = DEFAULT_TOLERANCE_MS,
	pickup_ms: float = 0.0,
	markers: typing.Optional[typing.Dict[int, str]] = None,
	voice: int = 0
) -> typing.List[scorecycle.bars.BarSlot]:

	"""Group one voice's events into bars of equal length.

	Parameters:
		events: The voice's events, sorted by onset (see ``normalize_events``).
		bar_length_ms: Length of every bar in milliseconds.
		fill_gaps: Synthesize rests for silent gaps (timing-based sources).
		tolerance_ms: Timing slack when comparing against bar lines and gaps.
		pickup_ms: Length of an anacrusis; the first bar is then padded with a
			leading rest so the following bar lines fall in the right place.
		markers: Repeat-barline tags keyed by bar index, copied onto the bars.
		voice: Voice index stored on each bar.

	Returns:
		One `BarSlot` per bar, each holding millisecond fragments. The last
		bar is padded to full length; empty bars hold one full-bar rest.

	Raises:
		ConfigurationError: If ``bar_length_ms`` is not positive.

	Example:
		```python
		events = [Event(0, 500, 0), Event(1500, 1000, 2)]
		bars = segment_bars(events, bar_length_ms=2000)
		# bar 0: 0 (0-500), rest (500-1500), 2 (1500-2000)
		# bar 1: 2 (0-500, tied), rest (500-2000)
		```
	"""

	if bar_length_ms <= 0:
		raise ConfigurationError(f"Bar length must be positive, got {bar_length_ms}")

	if tolerance_ms < 0:
		raise ConfigurationError(f"Tolerance cannot be negative, got {tolerance_ms}")

	scanner = _BarScanner(bar_length_ms, tolerance_ms, voice)

	shift = 0.0

	if tolerance_ms < pickup_ms < bar_length_ms - tolerance_ms:
		shift = bar_length_ms - pickup_ms
		scanner.place(0.0, shift, None, None)

	expected = shift

	for event in events:

		onset = event.onset_ms + shift

		if fill_gaps and onset > expected + tolerance_ms:
			scanner.place(expected, onset - expected, None, None)

		scanner.place(onset, event.duration_ms, event.pitch, event.chord_group)

		expected = max(expected, onset + event.duration_ms)

	bars = scanner.finish()

	if bars:
		if shift:
			bars[0].pickup = True
		elif not fill_gaps:
			_pad_pickup(bars[0], bar_length_ms, tolerance_ms)

	if markers:
		for bar in bars:
			bar.bar_type = markers.get(bar.index)

	logger.debug(f"Voice {voice}: {len(events)} events → {len(bars)} bars")

	return bars
