"""
MusicXML adapter.

Walks a partwise score parsed by ``xml.etree.ElementTree``. Each ``<part>``
becomes one voice. Rests are written out in a score, so gap filling is off,
and notes joined by ``<chord/>`` share a chord id.
"""

import io
import logging
import typing
import xml.etree.ElementTree
import zipfile

import scorecycle.bars
import scorecycle.chords
import scorecycle.constants.instruments
import scorecycle.events
import scorecycle.keys
import scorecycle.quantizer
import scorecycle.source


logger = logging.getLogger(__name__)


DEFAULT_TITLE = "Untitled"

# Length of each metronome beat unit in quarter notes.
BEAT_UNIT_QUARTERS: typing.Dict[str, float] = {
	"whole": 4.0,
	"half": 2.0,
	"quarter": 1.0,
	"eighth": 0.5,
	"16th": 0.25,
	"32nd": 0.125,
}


def _local (tag: str) -> str:

	"""Strip an ElementTree namespace prefix (``{uri}note`` → ``note``)."""

	return tag.rsplit("}", 1)[-1]


def _children (element: xml.etree.ElementTree.Element, name: str) -> typing.List[xml.etree.ElementTree.Element]:

	return [child for child in element if _local(child.tag) == name]


def _child (element: xml.etree.ElementTree.Element, name: str) -> typing.Optional[xml.etree.ElementTree.Element]:

	for child in element:
		if _local(child.tag) == name:
			return child

	return None


def _text (element: typing.Optional[xml.etree.ElementTree.Element], name: str, default: str = "") -> str:

	if element is None:
		return default

	child = _child(element, name)

	if child is None or child.text is None:
		return default

	return child.text.strip()


def _descendants (element: xml.etree.ElementTree.Element, name: str) -> typing.Iterator[xml.etree.ElementTree.Element]:

	for node in element.iter():
		if _local(node.tag) == name:
			yield node


class MusicXmlSource (scorecycle.source.EventSource):

	"""Adapter for partwise MusicXML (``.xml``, ``.musicxml`` or compressed ``.mxl``).

	Timing follows the score: every measure is one bar long, except an
	implicit (pickup) first measure, whose written length becomes the
	anacrusis. ``<backup>`` and ``<forward>`` move the time cursor; a forward
	jump is written as a rest. Grace notes take no time and are skipped.

	Parameters:
		chromatic: Emit semitone offsets from the tonic instead of diatonic degrees.
	"""

	name = "musicxml"
	fill_gaps = False
	chord_mode = scorecycle.chords.GROUP
	quantize_mode = scorecycle.quantizer.FIXED

	def __init__ (self, chromatic: bool = False) -> None:

		self.chromatic = chromatic

	def load (self, path: str) -> xml.etree.ElementTree.Element:

		"""Parse a MusicXML file, unpacking ``.mxl`` archives in memory."""

		try:
			if path.lower().endswith(".mxl"):
				with zipfile.ZipFile(path, "r") as archive:
					names = [n for n in archive.namelist() if n.endswith((".xml", ".musicxml")) and not n.startswith("META-INF")]
					if not names:
						raise scorecycle.source.SourceError(f"No score found inside {path}")
					with archive.open(names[0]) as f:
						return xml.etree.ElementTree.parse(io.BytesIO(f.read())).getroot()

			return xml.etree.ElementTree.parse(path).getroot()

		except (OSError, zipfile.BadZipFile, xml.etree.ElementTree.ParseError) as exc:
			raise scorecycle.source.SourceError(f"Cannot read MusicXML file {path}: {exc}") from exc

	def parse_text (self, text: str) -> xml.etree.ElementTree.Element:

		"""Parse MusicXML source text."""

		if not text or not text.strip():
			raise scorecycle.source.SourceError("Empty MusicXML input")

		try:
			return xml.etree.ElementTree.fromstring(text)

		except xml.etree.ElementTree.ParseError as exc:
			raise scorecycle.source.SourceError(f"Malformed MusicXML: {exc}") from exc

	def extract_events (self, root: xml.etree.ElementTree.Element) -> scorecycle.events.SourceData:

		"""Return one event list per part."""

		if _local(root.tag) != "score-partwise":
			raise scorecycle.source.SourceError(f"Expected <score-partwise>, got <{_local(root.tag)}>")

		parts = _children(root, "part")

		if not parts:
			raise scorecycle.source.SourceError("Score has no parts")

		meta = self._read_meta(root)
		names, programs = self._read_part_list(root)

		data = scorecycle.events.SourceData(meta=meta)

		for voice, part in enumerate(parts):

			part_id = part.get("id", "")
			events, markers, pickup_ms = self._read_part(part, meta, voice)

			data.voices.append(events)
			data.names.append(names.get(part_id) or f"Part {voice + 1}")
			data.markers.append(markers)

			program = programs.get(part_id)
			data.instruments.append(scorecycle.constants.instruments.sound_for_program(program) if program is not None else None)

			if voice == 0:
				data.pickup_ms = pickup_ms

			logger.info(f"Part {part_id or voice}: {len(events)} events, {len(markers)} repeat markers")

		return data

	def _read_meta (self, root: xml.etree.ElementTree.Element) -> scorecycle.events.SourceMeta:

		meta = scorecycle.events.SourceMeta(title=self._read_title(root))

		tempo = self._read_tempo(root)

		if tempo is None:
			logger.info(f"No tempo in score, using {meta.tempo_bpm:.0f} BPM")
		else:
			meta.tempo_bpm = tempo

		time = next(_descendants(root, "time"), None)

		if time is not None:
			try:
				meta.meter_numerator = sum(int(beat) for beat in _text(time, "beats", "4").split("+"))
				meta.meter_denominator = int(_text(time, "beat-type", "4"))
			except ValueError as exc:
				raise scorecycle.source.SourceError(f"Unreadable time signature: {exc}") from exc

		key = next(_descendants(root, "key"), None)

		if key is not None and _text(key, "fifths"):
			minor = _text(key, "mode").lower() == "minor"
			try:
				meta.key = scorecycle.keys.key_from_fifths(int(_text(key, "fifths")), minor=minor)
			except ValueError as exc:
				raise scorecycle.source.SourceError(f"Unreadable key signature: {exc}") from exc

		return meta

	def _read_title (self, root: xml.etree.ElementTree.Element) -> str:

		work_title = _text(_child(root, "work"), "work-title")
		movement_title = _text(root, "movement-title")

		return work_title or movement_title or DEFAULT_TITLE

	def _read_tempo (self, root: xml.etree.ElementTree.Element) -> typing.Optional[float]:

		"""Return the first tempo in quarter notes per minute, from ``<sound tempo>`` or a metronome mark."""

		for sound in _descendants(root, "sound"):
			if sound.get("tempo"):
				return float(sound.get("tempo"))

		for metronome in _descendants(root, "metronome"):

			per_minute = _text(metronome, "per-minute")
			unit = _text(metronome, "beat-unit", "quarter")

			if not per_minute or unit not in BEAT_UNIT_QUARTERS:
				continue

			quarters = BEAT_UNIT_QUARTERS[unit]

			if _child(metronome, "beat-unit-dot") is not None:
				quarters *= 1.5

			return float(per_minute) * quarters

		return None

	def _read_part_list (self, root: xml.etree.ElementTree.Element) -> typing.Tuple[typing.Dict[str, str], typing.Dict[str, int]]:

		"""Return part names and zero-based General MIDI programs keyed by part id."""

		names: typing.Dict[str, str] = {}
		programs: typing.Dict[str, int] = {}

		for score_part in _descendants(root, "score-part"):

			part_id = score_part.get("id", "")
			names[part_id] = _text(score_part, "part-name")

			instrument = _child(score_part, "midi-instrument")
			program = _text(instrument, "midi-program")

			if program:
				# MusicXML numbers programs from 1.
				programs[part_id] = int(program) - 1

		return names, programs

	def _pitch (self, note: xml.etree.ElementTree.Element, key: scorecycle.keys.Key) -> int:

		pitch = _child(note, "pitch")
		step = _text(pitch, "step", "C")
		octave = int(_text(pitch, "octave", str(scorecycle.keys.REFERENCE_OCTAVE)))

		if self.chromatic:
			alter = int(round(float(_text(pitch, "alter", "0"))))
			midi = 12 * (octave + 1) + scorecycle.keys.NOTE_NAME_TO_PC[step] + alter
			return scorecycle.keys.midi_to_offset(midi, key)

		return scorecycle.keys.letter_to_degree(step, octave, key)

	def _read_part (
		self,
		part: xml.etree.ElementTree.Element,
		meta: scorecycle.events.SourceMeta,
		voice: int
	) -> typing.Tuple[typing.List[scorecycle.events.Event], typing.Dict[int, str], float]:

		"""Walk the measures of one part, keeping an absolute time cursor."""

		bar_length_ms = meta.bar_length_ms
		divisions = 1

		events: typing.List[scorecycle.events.Event] = []
		seen: typing.Set[typing.Tuple[float, float, typing.Optional[int]]] = set()
		markers: typing.Dict[int, str] = {}

		pickup_ms = 0.0
		measure_start = 0.0
		group = 0

		for index, measure in enumerate(_children(part, "measure")):

			cursor = 0.0
			furthest = 0.0
			onset = 0.0
			opens = False
			closes = False

			for child in measure:

				tag = _local(child.tag)

				if tag == "attributes":
					divisions = int(_text(child, "divisions", str(divisions)))

				elif tag == "note":

					if _child(child, "grace") is not None:
						continue

					duration = int(_text(child, "duration", "0")) / divisions * meta.ms_per_beat

					if _child(child, "chord") is None:
						onset = cursor
						cursor += duration
						group += 1

					pitch = None if _child(child, "rest") is not None else self._pitch(child, meta.key)
					start = measure_start + onset

					identity = (round(start, 3), round(duration, 3), pitch)

					if identity not in seen:
						seen.add(identity)
						events.append(scorecycle.events.Event(
							onset_ms = start,
							duration_ms = duration,
							pitch = pitch,
							chord_group = (voice, group),
							voice = voice
						))

				elif tag == "backup":
					cursor -= int(_text(child, "duration", "0")) / divisions * meta.ms_per_beat

				elif tag == "forward":
					duration = int(_text(child, "duration", "0")) / divisions * meta.ms_per_beat
					group += 1
					events.append(scorecycle.events.Event(
						onset_ms = measure_start + cursor,
						duration_ms = duration,
						chord_group = (voice, group),
						voice = voice
					))
					cursor += duration

				elif tag == "barline":
					repeat = _child(child, "repeat")
					if repeat is not None:
						if repeat.get("direction") == "forward":
							opens = True
						elif repeat.get("direction") == "backward":
							closes = True

				furthest = max(furthest, cursor)

			if opens and closes:
				markers[index] = scorecycle.bars.REPEAT_BOTH
			elif opens:
				markers[index] = scorecycle.bars.REPEAT_START
			elif closes:
				markers[index] = scorecycle.bars.REPEAT_END

			if index == 0 and measure.get("implicit") == "yes" and 0 < furthest < bar_length_ms:
				pickup_ms = furthest
				measure_start += furthest
				logger.debug(f"Pickup measure of {furthest:.1f}ms")
			else:
				measure_start += bar_length_ms

		return events, markers, pickup_ms
