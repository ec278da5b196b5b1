"""
MIDI file adapter.

Reads a decoded ``mido.MidiFile``: one voice per track that holds notes,
optionally split at a pitch into a high and a low voice (the two hands of a
piano part). Timing comes from ticks, converted with the first tempo of the
file so that bar lines stay on the beat grid even if the tempo changes later.
"""

import collections
import logging
import typing

import mido

import scorecycle.chords
import scorecycle.constants.instruments
import scorecycle.events
import scorecycle.keys
import scorecycle.quantizer
import scorecycle.source


logger = logging.getLogger(__name__)


# Notes shorter than this are inaudible and dropped.
MIN_NOTE_MS = 10.0

DEFAULT_SPLIT_PITCH = 60
DEFAULT_TITLE = "MIDI File"


class _TrackNote (typing.NamedTuple):

	start: int
	end: int
	note: int
	velocity: int


class MidiSource (scorecycle.source.EventSource):

	"""Adapter for standard MIDI files.

	MIDI carries no rests and no chord markings, so gaps are filled with rests
	and chords are found by timing. Tick positions are exact fractions of a
	beat, which suits the fixed-multiplier quantizer.

	Parameters:
		split_pitch: Notes at or above this MIDI number go to a ``(High)``
			voice, the others to a ``(Low)`` voice. None keeps each track whole.
		chromatic: Emit semitone offsets from the tonic instead of diatonic degrees.

	Example:
		```python
		source = MidiSource(split_pitch=None)
		data = source.extract_events(mido.MidiFile("song.mid"))
		```
	"""

	name = "midi"
	fill_gaps = True
	chord_mode = scorecycle.chords.TIMING
	quantize_mode = scorecycle.quantizer.FIXED

	def __init__ (self, split_pitch: typing.Optional[int] = DEFAULT_SPLIT_PITCH, chromatic: bool = False) -> None:

		self.split_pitch = split_pitch
		self.chromatic = chromatic

	def load (self, path: str) -> mido.MidiFile:

		"""Decode a MIDI file from disk."""

		try:
			return mido.MidiFile(path)

		except (OSError, EOFError, ValueError) as exc:
			raise scorecycle.source.SourceError(f"Cannot read MIDI file {path}: {exc}") from exc

	def extract_events (self, midi: mido.MidiFile) -> scorecycle.events.SourceData:

		"""Return one event list per (track, hand) that contains notes."""

		if not midi.tracks:
			raise scorecycle.source.SourceError("MIDI file has no tracks")

		meta = self._read_meta(midi)
		ms_per_tick = meta.ms_per_beat / midi.ticks_per_beat

		data = scorecycle.events.SourceData(meta=meta)

		for track_index, track in enumerate(midi.tracks):

			notes, track_name, program = self._read_track(track)

			notes = [n for n in notes if n.velocity > 0 and (n.end - n.start) * ms_per_tick >= MIN_NOTE_MS]

			if not notes:
				logger.debug(f"Skipping track {track_index}: no audible notes")
				continue

			name = track_name or f"Track {track_index + 1}"
			instrument = scorecycle.constants.instruments.sound_for_program(program) if program is not None else None

			for hand_name, hand_notes in self._split(name, notes):

				voice = len(data.voices)

				data.voices.append([
					scorecycle.events.Event(
						onset_ms = n.start * ms_per_tick,
						duration_ms = (n.end - n.start) * ms_per_tick,
						pitch = self._pitch(n.note, meta.key),
						voice = voice
					)
					for n in hand_notes
				])
				data.names.append(hand_name)
				data.instruments.append(instrument)

				logger.info(f"Voice {voice} ({hand_name}): {len(hand_notes)} notes")

		if not data.voices:
			raise scorecycle.source.SourceError("MIDI file contains no notes")

		return data

	def _read_meta (self, midi: mido.MidiFile) -> scorecycle.events.SourceMeta:

		"""Take the first tempo, time signature and key signature in time order."""

		meta = scorecycle.events.SourceMeta(title=DEFAULT_TITLE)

		tempo_seen = False
		meter_seen = False
		key_seen = False

		for msg in mido.merge_tracks(midi.tracks):

			if msg.type == "set_tempo":
				if not tempo_seen:
					meta.tempo_bpm = mido.tempo2bpm(msg.tempo)
					tempo_seen = True
				elif abs(mido.tempo2bpm(msg.tempo) - meta.tempo_bpm) > 0.01:
					logger.info(f"Ignoring tempo change to {mido.tempo2bpm(msg.tempo):.1f} BPM")

			elif msg.type == "time_signature" and not meter_seen:
				meta.meter_numerator = msg.numerator
				meta.meter_denominator = msg.denominator
				meter_seen = True

			elif msg.type == "key_signature" and not key_seen:
				meta.key = scorecycle.keys.parse_key(msg.key)
				key_seen = True

		for msg in midi.tracks[0]:
			if msg.type == "track_name" and msg.name.strip():
				meta.title = msg.name.strip()
				break

		if not tempo_seen:
			logger.info(f"No tempo in MIDI file, using {meta.tempo_bpm:.0f} BPM")

		if not key_seen:
			logger.info("No key signature in MIDI file, using C major")

		return meta

	def _read_track (self, track: mido.MidiTrack) -> typing.Tuple[typing.List[_TrackNote], str, typing.Optional[int]]:

		"""Pair note-ons with note-offs (first in, first out per channel and note)."""

		pending: typing.Dict[typing.Tuple[int, int], typing.Deque[typing.Tuple[int, int]]] = collections.defaultdict(collections.deque)
		notes: typing.List[_TrackNote] = []

		name = ""
		program: typing.Optional[int] = None
		tick = 0

		for msg in track:

			tick += msg.time

			if msg.type == "note_on" and msg.velocity > 0:
				pending[(msg.channel, msg.note)].append((tick, msg.velocity))

			elif msg.type == "note_off" or msg.type == "note_on":
				queue = pending.get((msg.channel, msg.note))
				if queue:
					start, velocity = queue.popleft()
					notes.append(_TrackNote(start, tick, msg.note, velocity))

			elif msg.type == "program_change" and program is None:
				program = msg.program

			elif msg.type == "track_name" and not name:
				name = msg.name.strip()

		for (channel, note), queue in pending.items():
			for start, velocity in queue:
				logger.debug(f"Closing unterminated note {note} on channel {channel} at track end")
				notes.append(_TrackNote(start, tick, note, velocity))

		notes.sort(key=lambda n: (n.start, n.note))

		return notes, name, program

	def _split (self, name: str, notes: typing.List[_TrackNote]) -> typing.List[typing.Tuple[str, typing.List[_TrackNote]]]:

		if self.split_pitch is None:
			return [(name, notes)]

		high = [n for n in notes if n.note >= self.split_pitch]
		low = [n for n in notes if n.note < self.split_pitch]

		if not high or not low:
			return [(name, notes)]

		return [(f"{name} (High)", high), (f"{name} (Low)", low)]

	def _pitch (self, note: int, key: scorecycle.keys.Key) -> int:

		if self.chromatic:
			return scorecycle.keys.midi_to_offset(note, key)

		return scorecycle.keys.midi_to_degree(note, key)
