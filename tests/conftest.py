import typing

import mido
import pytest

import scorecycle.bars
import scorecycle.events
import scorecycle.source


TICKS_PER_BEAT = 480


def make_midi (
	tracks: typing.Sequence[typing.Sequence[typing.Tuple[float, float, int]]],
	bpm: float = 120,
	meter: typing.Tuple[int, int] = (4, 4),
	key: typing.Optional[str] = "C",
	title: str = "Test Song",
	track_names: typing.Optional[typing.Sequence[str]] = None,
	programs: typing.Optional[typing.Sequence[typing.Optional[int]]] = None
) -> mido.MidiFile:

	"""Build an in-memory type 1 MIDI file.

	Each track is a list of ``(start_beat, length_beats, note)``. Track 0 holds
	the tempo, meter, key and title; note tracks follow it.
	"""

	midi = mido.MidiFile(type=1, ticks_per_beat=TICKS_PER_BEAT)

	conductor = mido.MidiTrack()
	conductor.append(mido.MetaMessage("track_name", name=title, time=0))
	conductor.append(mido.MetaMessage("set_tempo", tempo=mido.bpm2tempo(bpm), time=0))
	conductor.append(mido.MetaMessage("time_signature", numerator=meter[0], denominator=meter[1], time=0))

	if key is not None:
		conductor.append(mido.MetaMessage("key_signature", key=key, time=0))

	conductor.append(mido.MetaMessage("end_of_track", time=0))
	midi.tracks.append(conductor)

	for index, notes in enumerate(tracks):

		track = mido.MidiTrack()

		if track_names is not None:
			track.append(mido.MetaMessage("track_name", name=track_names[index], time=0))

		if programs is not None and programs[index] is not None:
			track.append(mido.Message("program_change", program=programs[index], channel=0, time=0))

		# (tick, order, message): note-offs sort before note-ons at the same tick.
		timeline: typing.List[typing.Tuple[int, int, mido.Message]] = []

		for start, length, note in notes:
			on = int(round(start * TICKS_PER_BEAT))
			off = int(round((start + length) * TICKS_PER_BEAT))
			timeline.append((on, 1, mido.Message("note_on", note=note, velocity=90, channel=0)))
			timeline.append((off, 0, mido.Message("note_off", note=note, velocity=0, channel=0)))

		timeline.sort(key=lambda item: (item[0], item[1]))

		tick = 0

		for at, _, message in timeline:
			track.append(message.copy(time=at - tick))
			tick = at

		track.append(mido.MetaMessage("end_of_track", time=0))
		midi.tracks.append(track)

	return midi


class ListSource (scorecycle.source.EventSource):

	"""Adapter over ready-made events, for pipeline tests."""

	name = "list"

	def __init__ (self, fill_gaps: bool = True, chord_mode: str = "timing", quantize_mode: str = "minimal") -> None:

		self.fill_gaps = fill_gaps
		self.chord_mode = chord_mode
		self.quantize_mode = quantize_mode

	def load (self, path: str) -> scorecycle.events.SourceData:

		raise scorecycle.source.SourceError(f"ListSource cannot load {path}")

	def extract_events (self, document: scorecycle.events.SourceData) -> scorecycle.events.SourceData:

		if document is None:
			raise scorecycle.source.SourceError("Empty input")

		return document


@pytest.fixture
def list_source () -> ListSource:

	"""A timing-based adapter that passes events straight through."""

	return ListSource()


@pytest.fixture
def simple_midi () -> mido.MidiFile:

	"""One bar in C major: C4 (1 beat), E4 (1 beat), G4 (2 beats)."""

	return make_midi([[(0, 1, 60), (1, 1, 64), (2, 2, 67)]], track_names=["Piano"])


def tokens_bar (index: int, tokens: typing.Sequence[scorecycle.bars.Token], bar_type: typing.Optional[str] = None) -> scorecycle.bars.BarSlot:

	"""Return a frozen bar holding the given tokens."""

	bar = scorecycle.bars.BarSlot(index=index, tokens=tuple(tokens), bar_type=bar_type)
	bar.freeze()

	return bar


def rest_bar (index: int = 0, bar_type: typing.Optional[str] = None) -> scorecycle.bars.BarSlot:

	"""Return a frozen one-unit rest bar."""

	return tokens_bar(index, [scorecycle.bars.Rest(1)], bar_type)


def note_bar (index: int, *pitches: int, bar_type: typing.Optional[str] = None) -> scorecycle.bars.BarSlot:

	"""Return a frozen bar of one-unit notes."""

	return tokens_bar(index, [scorecycle.bars.Note((p,), 1) for p in pitches], bar_type)
