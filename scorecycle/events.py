"""Canonical timed events and the header metadata that travels with them.

Every source adapter reduces its parsed document to the same shape: one list
of `Event` objects per voice plus a `SourceMeta`. `normalize_events()` then
puts each list into the order the bar segmenter expects.
"""

import dataclasses
import logging
import typing

import scorecycle.keys


logger = logging.getLogger(__name__)


DEFAULT_TEMPO_BPM = 120.0
DEFAULT_REST_EPSILON_MS = 10.0


class ConfigurationError(Exception):

	"""Raised when metadata cannot produce a usable bar grid (non-positive bar length, degenerate meter)."""


@dataclasses.dataclass(frozen=True)
class Event:

	"""
	A single note or rest on an absolute timeline.

	Attributes:
		onset_ms: Start time in milliseconds from the beginning of the piece.
		duration_ms: Length in milliseconds.
		pitch: Scale degree (or chromatic offset) relative to the tonic, ``None`` for a rest.
		chord_group: Source-provided id shared by notes written as one chord.
		voice: Index of the voice or track the event belongs to.
	"""

	onset_ms: float
	duration_ms: float
	pitch: typing.Optional[int] = None
	chord_group: typing.Optional[typing.Hashable] = None
	voice: int = 0

	@property
	def is_rest (self) -> bool:

		"""Return True if this event is silence."""

		return self.pitch is None

	@property
	def end_ms (self) -> float:

		"""Return the time at which the event stops sounding."""

		return self.onset_ms + self.duration_ms


@dataclasses.dataclass
class SourceMeta:

	"""
	Header metadata of a parsed document.

	Attributes:
		tempo_bpm: Quarter notes per minute.
		meter_numerator: Beats per bar as written (the 3 of 3/4).
		meter_denominator: Beat unit as written (the 4 of 3/4).
		key: Tonic and mode, taken verbatim from the source.
		title: Title text, may span several lines.
	"""

	tempo_bpm: float = DEFAULT_TEMPO_BPM
	meter_numerator: int = 4
	meter_denominator: int = 4
	key: scorecycle.keys.Key = dataclasses.field(default_factory=scorecycle.keys.Key)
	title: str = ""

	@property
	def beats_per_bar (self) -> float:

		"""Return the bar length counted in quarter notes (6/8 → 3.0)."""

		if self.meter_numerator <= 0 or self.meter_denominator <= 0:
			raise ConfigurationError(
				f"Degenerate meter {self.meter_numerator}/{self.meter_denominator}"
			)

		return self.meter_numerator * (4 / self.meter_denominator)

	@property
	def ms_per_beat (self) -> float:

		"""Return the length of one quarter note in milliseconds."""

		if self.tempo_bpm <= 0:
			raise ConfigurationError(f"Tempo must be positive, got {self.tempo_bpm}")

		return 60000.0 / self.tempo_bpm

	@property
	def bar_length_ms (self) -> float:

		"""Return the length of one bar in milliseconds."""

		return self.beats_per_bar * self.ms_per_beat

	@property
	def cycles_per_minute (self) -> int:

		"""Return the pattern-language tempo: one cycle per bar."""

		return round(self.tempo_bpm / self.beats_per_bar)


@dataclasses.dataclass
class SourceData:

	"""
	Everything an adapter extracts from one parsed document.

	Attributes:
		meta: Header metadata.
		voices: One event list per voice, in voice order.
		names: Display name per voice.
		instruments: Sound name per voice (``None`` = use the default).
		markers: Per voice, repeat-barline tags keyed by bar index.
		pickup_ms: Length of an anacrusis before the first full bar (0 = none).
		tune_number: Optional tune number used to name the output arrays.
	"""

	meta: SourceMeta
	voices: typing.List[typing.List[Event]] = dataclasses.field(default_factory=list)
	names: typing.List[str] = dataclasses.field(default_factory=list)
	instruments: typing.List[typing.Optional[str]] = dataclasses.field(default_factory=list)
	markers: typing.List[typing.Dict[int, str]] = dataclasses.field(default_factory=list)
	pickup_ms: float = 0.0
	tune_number: typing.Optional[int] = None

	def voice_name (self, index: int) -> str:

		"""Return the display name of a voice, falling back to its number."""

		if index < len(self.names) and self.names[index]:
			return self.names[index]

		return f"Voice {index + 1}"

	def voice_instrument (self, index: int) -> typing.Optional[str]:

		"""Return the sound name of a voice, if the source named one."""

		if index < len(self.instruments):
			return self.instruments[index]

		return None

	def voice_markers (self, index: int) -> typing.Dict[int, str]:

		"""Return the repeat markers of a voice (empty when the source has none)."""

		if index < len(self.markers):
			return self.markers[index]

		return {}


def normalize_events (events: typing.Iterable[Event], rest_epsilon_ms: float = DEFAULT_REST_EPSILON_MS) -> typing.List[Event]:

	"""Return the events of one voice in onset order, without inaudible entries.

	The sort is stable, so events sharing an onset keep the order in which the
	adapter emitted them. Rests shorter than ``rest_epsilon_ms`` are dropped,
	as is anything with a non-positive duration.

	Parameters:
		events: Events of a single voice in emission order.
		rest_epsilon_ms: Rests shorter than this are removed.

	Returns:
		A new list; the input is not modified.
	"""

	kept: typing.List[Event] = []

	for event in events:

		if event.duration_ms <= 0:
			logger.debug(f"Dropping event with non-positive duration at {event.onset_ms:.1f}ms")
			continue

		if event.is_rest and event.duration_ms < rest_epsilon_ms:
			logger.debug(f"Dropping {event.duration_ms:.1f}ms rest at {event.onset_ms:.1f}ms")
			continue

		kept.append(event)

	return sorted(kept, key=lambda e: e.onset_ms)
