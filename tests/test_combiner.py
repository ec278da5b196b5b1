import pytest

import conftest
import scorecycle.bars
import scorecycle.combiner
import scorecycle.sections


Note = scorecycle.bars.Note
Rest = scorecycle.bars.Rest


def _part (array: str, bars, instrument: str = "gm_piano") -> scorecycle.combiner.VoicePart:

	return scorecycle.combiner.VoicePart(
		array = array,
		name = array,
		deduplication = scorecycle.bars.deduplicate(bars),
		instrument = instrument
	)


def test_short_voice_is_padded_with_rests () -> None:

	"""Every voice ends up as long as the longest one."""

	long = _part("part0", [conftest.note_bar(i, i) for i in range(3)])
	short = _part("part1", [conftest.note_bar(0, 7)])

	scorecycle.combiner.combine([long, short], scale="C:major")

	assert len(short.deduplication.indices) == 3
	assert short.deduplication.expand() == [(Note((7,), 1),), (Rest(1),), (Rest(1),)]


def test_padding_reuses_existing_rest_bar () -> None:

	"""A voice that already has a full-bar rest gets no new definition."""

	a = scorecycle.bars.deduplicate([conftest.note_bar(i, i) for i in range(4)])
	b = scorecycle.bars.deduplicate([conftest.rest_bar(0), conftest.note_bar(1, 2)])

	scorecycle.combiner.pad_voices([a, b])

	assert b.indices == [0, 1, 0, 0]
	assert len(b.unique) == 2


def test_single_voice_plays_its_bars_in_order () -> None:

	"""One voice is a cat of its bar references, the sound on the program."""

	part = _part("part0", [conftest.rest_bar(0), conftest.rest_bar(1), conftest.note_bar(2, 0)])

	composition = scorecycle.combiner.combine([part], scale="D:minor", title="Tune")
	program = composition.program

	assert program.body == scorecycle.combiner.Cat((
		scorecycle.combiner.BarRef("part0", 0),
		scorecycle.combiner.BarRef("part0", 0),
		scorecycle.combiner.BarRef("part0", 1),
	))
	assert program.scale == "D:minor"
	assert program.instrument == "gm_piano"
	assert composition.sections == []


def test_shared_instrument_stays_on_program () -> None:

	"""Voices with the same sound are stacked without per-voice sounds."""

	parts = [_part("part0", [conftest.note_bar(0, 0)]), _part("part1", [conftest.note_bar(0, 4)])]

	program = scorecycle.combiner.combine(parts, scale="C:major").program

	assert isinstance(program.body, scorecycle.combiner.Stack)
	assert program.instrument == "gm_piano"
	assert all(isinstance(item, scorecycle.combiner.Cat) for item in program.body.items)


def test_mixed_instruments_voice_each_part () -> None:

	"""Voices with different sounds each carry their own."""

	parts = [
		_part("part0", [conftest.note_bar(0, 0)], "gm_violin"),
		_part("part1", [conftest.note_bar(0, 4)], "gm_cello"),
	]

	program = scorecycle.combiner.combine(parts, scale="C:major").program

	assert program.instrument is None
	assert [item.instrument for item in program.body.items] == ["gm_violin", "gm_cello"]


def test_sections_become_arrays () -> None:

	"""With sections each voice plays its section arrays, prefixed when there are several voices."""

	sections = [scorecycle.sections.Section("main", 0, 2), scorecycle.sections.Section("coda", 2, 3)]
	parts = [
		_part("part0", [conftest.note_bar(i, i) for i in range(3)]),
		_part("part1", [conftest.note_bar(i, 0) for i in range(3)]),
	]

	composition = scorecycle.combiner.combine(parts, scale="C:major", sections=sections)

	assert [s.name for s in composition.sections] == ["part0_main", "part0_coda", "part1_main", "part1_coda"]
	assert composition.sections[0].refs == [scorecycle.combiner.BarRef("part0", 0), scorecycle.combiner.BarRef("part0", 1)]
	assert composition.sections[2].refs == [scorecycle.combiner.BarRef("part1", 0), scorecycle.combiner.BarRef("part1", 0)]
	assert composition.program.body.items[0] == scorecycle.combiner.Cat((
		scorecycle.combiner.SectionRef("part0_main"),
		scorecycle.combiner.SectionRef("part0_coda"),
	))


def test_single_voice_sections_are_unprefixed () -> None:

	"""A lone voice names its sections plainly."""

	sections = [scorecycle.sections.Section("main", 0, 1), scorecycle.sections.Section("outro", 1, 2)]
	part = _part("t1", [conftest.note_bar(0, 0), conftest.note_bar(1, 1)])

	composition = scorecycle.combiner.combine([part], scale="C:major", sections=sections)

	assert [s.name for s in composition.sections] == ["main", "outro"]


def test_no_voices () -> None:

	"""There must be something to combine."""

	with pytest.raises(ValueError):
		scorecycle.combiner.combine([], scale="C:major")
