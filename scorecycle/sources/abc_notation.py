"""
ABC notation adapter.

The ABC grammar itself is parsed elsewhere (abcjs ``parseOnly``); this adapter
walks the parsed tune it produces, a JSON structure of
``lines → staff → voices → elements``. Element durations are fractions of a
whole note and pitches are diatonic steps with C = 0, c = 7.

The raw ABC text may ride along with the tune; header fields missing from the
parsed structure (tune number, key, meter, tempo) are read from it.
"""

import dataclasses
import json
import logging
import re
import typing

import scorecycle.bars
import scorecycle.chords
import scorecycle.constants.instruments
import scorecycle.events
import scorecycle.keys
import scorecycle.quantizer
import scorecycle.segmenter
import scorecycle.source


logger = logging.getLogger(__name__)


DEFAULT_TITLE = "Untitled"

# abcjs bar types that carry repeat signs.
BAR_REPEAT_TAGS: typing.Dict[str, typing.Tuple[typing.Optional[str], typing.Optional[str]]] = {
	"bar_left_repeat": (None, scorecycle.bars.REPEAT_START),
	"bar_right_repeat": (scorecycle.bars.REPEAT_END, None),
	"bar_dbl_repeat": (scorecycle.bars.REPEAT_END, None),
}

_FIELD_PATTERN = re.compile(r"^([A-Za-z]):\s*(.*?)\s*$", re.MULTILINE)
_TEMPO_PATTERN = re.compile(r"(\d+)\s*/\s*(\d+)\s*=\s*(\d+(?:\.\d+)?)")
_METER_PATTERN = re.compile(r"(\d+)\s*/\s*(\d+)")


@dataclasses.dataclass
class AbcTune:

	"""
	A tune as produced by the ABC parser, with the text it was parsed from.
	"""

	parsed: typing.Dict[str, typing.Any]
	text: str = ""


def read_header (text: str) -> typing.Dict[str, str]:

	"""Return the first value of each single-letter header field (``X``, ``T``, ``M`` ...)."""

	fields: typing.Dict[str, str] = {}

	for match in _FIELD_PATTERN.finditer(text or ""):
		fields.setdefault(match.group(1).upper(), match.group(2))

	return fields


def _meter_from_text (value: str) -> typing.Optional[typing.Tuple[int, int]]:

	if value.strip() == "C":
		return 4, 4

	if value.strip() == "C|":
		return 2, 2

	match = _METER_PATTERN.search(value)

	if match is None:
		return None

	return int(match.group(1)), int(match.group(2))


def _mark (markers: typing.Dict[int, str], index: int, tag: str) -> None:

	existing = markers.get(index)

	if existing is not None and existing != tag:
		markers[index] = scorecycle.bars.REPEAT_BOTH
	else:
		markers[index] = tag


@dataclasses.dataclass
class _VoiceCursor:

	"""Scan state of one ABC voice."""

	number: int
	cursor_ms: float = 0.0
	bar_start_ms: float = 0.0
	bar_count: int = 0
	bar_has_content: bool = False
	events: typing.List[scorecycle.events.Event] = dataclasses.field(default_factory=list)
	markers: typing.Dict[int, str] = dataclasses.field(default_factory=dict)
	open_ties: typing.Dict[int, int] = dataclasses.field(default_factory=dict)
	pickup_ms: float = 0.0
	triplet: float = 1.0


class AbcSource (scorecycle.source.EventSource):

	"""Adapter for tunes parsed from ABC notation.

	ABC timing is derived from written durations, so gaps are filled, chords
	are the parser's chord elements and durations go through the minimal-unit
	quantizer. Every (staff, voice) pair of the parsed tune becomes a voice.

	Example:
		```python
		source = AbcSource()
		data = source.extract_events(AbcTune(parsed=tune, text=abc_text))
		```
	"""

	name = "abc"
	fill_gaps = True
	chord_mode = scorecycle.chords.GROUP
	quantize_mode = scorecycle.quantizer.MINIMAL

	def load (self, path: str) -> AbcTune:

		"""Read a parsed tune saved as JSON.

		The file holds either the parser's tune object, a list of them (the
		first is used) or ``{"tune": ..., "abc": "<source text>"}``.
		"""

		try:
			with open(path, "r") as f:
				data = json.load(f)

		except (OSError, ValueError) as exc:
			raise scorecycle.source.SourceError(f"Cannot read parsed ABC tune {path}: {exc}") from exc

		if isinstance(data, list):
			if not data:
				raise scorecycle.source.SourceError(f"No tunes in {path}")
			data = data[0]

		if not isinstance(data, dict):
			raise scorecycle.source.SourceError(f"Unexpected parsed tune in {path}")

		if "tune" in data:
			return AbcTune(parsed=data["tune"], text=data.get("abc", ""))

		return AbcTune(parsed=data)

	def extract_events (self, tune: AbcTune) -> scorecycle.events.SourceData:

		"""Return one event list per ABC voice."""

		lines = tune.parsed.get("lines") or []

		if not any(line.get("staff") for line in lines):
			raise scorecycle.source.SourceError("ABC tune has no music lines")

		header = read_header(tune.text)
		meta = self._read_meta(tune.parsed, header)
		bar_length_ms = meta.bar_length_ms
		tonic_step = scorecycle.keys.LETTER_INDEX[meta.key.letter]

		voices: typing.Dict[typing.Tuple[int, int], _VoiceCursor] = {}
		group = 0

		for line in lines:

			for staff_index, staff in enumerate(line.get("staff") or []):

				for voice_index, elements in enumerate(staff.get("voices") or []):

					state = voices.get((staff_index, voice_index))

					if state is None:
						state = _VoiceCursor(number=len(voices))
						voices[(staff_index, voice_index)] = state

					for element in elements:

						kind = element.get("el_type")

						if kind == "note":
							group += 1
							self._note(state, element, meta, tonic_step, (state.number, group))

						elif kind == "bar":
							self._barline(state, element, bar_length_ms)

		data = scorecycle.events.SourceData(meta=meta)

		instrument = self._read_instrument(tune.parsed, header)
		number = header.get("X", "").strip()

		if number.isdigit():
			data.tune_number = int(number)

		for state in sorted(voices.values(), key=lambda s: s.number):

			data.voices.append(state.events)
			data.names.append(f"Voice {state.number + 1}")
			data.instruments.append(instrument)
			data.markers.append(state.markers)

			if state.number == 0:
				data.pickup_ms = state.pickup_ms

			logger.info(f"ABC voice {state.number}: {len(state.events)} events, {state.bar_count} barlines")

		return data

	def _note (
		self,
		state: _VoiceCursor,
		element: typing.Dict[str, typing.Any],
		meta: scorecycle.events.SourceMeta,
		tonic_step: int,
		group: typing.Tuple[int, int]
	) -> None:

		"""Emit the events of one note, chord or rest element and advance the cursor."""

		if element.get("startTriplet"):
			state.triplet = float(element.get("tripletMultiplier") or 1.0)

		duration_ms = float(element.get("duration") or 0.0) * 4 * meta.ms_per_beat * state.triplet

		if element.get("endTriplet"):
			state.triplet = 1.0

		if duration_ms <= 0:
			return

		onset_ms = state.cursor_ms
		state.cursor_ms += duration_ms
		state.bar_has_content = True

		if element.get("rest"):
			state.events.append(scorecycle.events.Event(onset_ms, duration_ms, None, group, state.number))
			return

		for pitch in element.get("pitches") or []:

			degree = int(pitch["pitch"]) - tonic_step

			# The parser marks ties with (often empty) objects, so test for the key.
			if "endTie" in pitch and degree in state.open_ties:
				index = state.open_ties.pop(degree)
				tied = state.events[index]
				state.events[index] = dataclasses.replace(tied, duration_ms=state.cursor_ms - tied.onset_ms)

			else:
				index = len(state.events)
				state.events.append(scorecycle.events.Event(onset_ms, duration_ms, degree, group, state.number))

			if "startTie" in pitch:
				state.open_ties[degree] = index

	def _barline (self, state: _VoiceCursor, element: typing.Dict[str, typing.Any], bar_length_ms: float) -> None:

		"""Close the bar (only if it holds music) and record repeat signs."""

		closes, opens = BAR_REPEAT_TAGS.get(element.get("type", ""), (None, None))

		if not state.bar_has_content:
			if closes and state.bar_count > 0:
				_mark(state.markers, state.bar_count - 1, closes)
			if opens:
				_mark(state.markers, state.bar_count, opens)
			return

		if closes:
			_mark(state.markers, state.bar_count, closes)

		if state.bar_count == 0:
			written = state.cursor_ms - state.bar_start_ms
			if 0 < written < bar_length_ms - scorecycle.segmenter.DEFAULT_TOLERANCE_MS:
				state.pickup_ms = written
				logger.debug(f"ABC voice {state.number}: pickup of {written:.1f}ms")

		state.bar_count += 1
		state.bar_start_ms = state.cursor_ms
		state.bar_has_content = False

		if opens:
			_mark(state.markers, state.bar_count, opens)

	def _read_meta (self, parsed: typing.Dict[str, typing.Any], header: typing.Dict[str, str]) -> scorecycle.events.SourceMeta:

		meta_text = parsed.get("metaText") or {}
		staff = self._first_staff(parsed)

		meta = scorecycle.events.SourceMeta(title=str(meta_text.get("title") or header.get("T") or DEFAULT_TITLE))

		key = staff.get("key") or {}

		try:
			if key.get("root") and key.get("root") != "none":
				accidental = {"sharp": "#", "flat": "b"}.get(key.get("acc") or "", "")
				meta.key = scorecycle.keys.parse_key(f"{key['root']}{accidental}{key.get('mode') or ''}")
			elif header.get("K"):
				meta.key = scorecycle.keys.parse_key(header["K"])
			else:
				logger.info("No key in ABC tune, using C major")

		except ValueError as exc:
			raise scorecycle.source.SourceError(f"Unreadable key: {exc}") from exc

		meter = self._read_meter(staff, header)

		if meter is None:
			logger.info("No meter in ABC tune, using 4/4")
		else:
			meta.meter_numerator, meta.meter_denominator = meter

		tempo = self._read_tempo(meta_text, header)

		if tempo is None:
			logger.info(f"No tempo in ABC tune, using {meta.tempo_bpm:.0f} BPM")
		else:
			meta.tempo_bpm = tempo

		return meta

	def _first_staff (self, parsed: typing.Dict[str, typing.Any]) -> typing.Dict[str, typing.Any]:

		for line in parsed.get("lines") or []:
			for staff in line.get("staff") or []:
				return staff

		return {}

	def _read_meter (self, staff: typing.Dict[str, typing.Any], header: typing.Dict[str, str]) -> typing.Optional[typing.Tuple[int, int]]:

		meter = staff.get("meter") or {}
		kind = meter.get("type")

		if kind == "common_time":
			return 4, 4

		if kind == "cut_time":
			return 2, 2

		for value in meter.get("value") or []:
			try:
				return int(value["num"]), int(value["den"])
			except (KeyError, TypeError, ValueError):
				# Compound numerators such as "2+3" are summed.
				try:
					return sum(int(n) for n in str(value["num"]).split("+")), int(value["den"])
				except (KeyError, ValueError):
					break

		if header.get("M"):
			return _meter_from_text(header["M"])

		return None

	def _read_tempo (self, meta_text: typing.Dict[str, typing.Any], header: typing.Dict[str, str]) -> typing.Optional[float]:

		"""Return the tempo in quarter notes per minute, whatever note the tune counts in."""

		tempo = meta_text.get("tempo") or {}

		if tempo.get("bpm"):
			beat = sum(float(d) for d in tempo.get("duration") or [0.25])
			return float(tempo["bpm"]) * beat * 4

		match = _TEMPO_PATTERN.search(header.get("Q", ""))

		if match:
			beat = int(match.group(1)) / int(match.group(2))
			return float(match.group(3)) * beat * 4

		return None

	def _read_instrument (self, parsed: typing.Dict[str, typing.Any], header: typing.Dict[str, str]) -> typing.Optional[str]:

		"""Return the sound named in the ``I:`` field, if it is a known one."""

		value = (parsed.get("metaText") or {}).get("I") or header.get("I")

		if isinstance(value, list):
			value = value[0] if value else None

		if not value:
			return None

		name = str(value).strip().lower()

		if scorecycle.constants.instruments.is_valid_sound(name):
			return name

		logger.warning(f"Unknown instrument {name!r} in ABC tune; using the default")

		return None
