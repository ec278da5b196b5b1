import json
import pathlib
import typing

import pytest

import scorecycle.bars
import scorecycle.formats
import scorecycle.pipeline
import scorecycle.source


ABC_TEXT = "X:1\nT:Scale Tune\nM:4/4\nL:1/4\nQ:1/4=120\nK:D\n"


def _note (duration: float, *pitches: int, **extra: typing.Any) -> typing.Dict[str, typing.Any]:

	element = {"el_type": "note", "duration": duration, "pitches": [{"pitch": p} for p in pitches]}
	element.update(extra)

	return element


def _rest (duration: float) -> typing.Dict[str, typing.Any]:

	return {"el_type": "note", "duration": duration, "rest": {"type": "rest"}}


def _bar (kind: str = "bar_thin") -> typing.Dict[str, typing.Any]:

	return {"el_type": "bar", "type": kind}


def _tune (*voices: typing.List[typing.Dict[str, typing.Any]], key: str = "D", meta: typing.Optional[dict] = None, text: str = ABC_TEXT) -> scorecycle.formats.AbcTune:

	"""Build a parsed tune with one staff per voice."""

	staff = [
		{
			"key": {"root": key[0], "acc": "sharp" if "#" in key else "", "mode": key[1:].replace("#", "")},
			"meter": {"type": "specified", "value": [{"num": "4", "den": "4"}]},
			"voices": [elements],
		}
		for elements in voices
	]

	parsed = {
		"metaText": meta if meta is not None else {"title": "Scale Tune", "tempo": {"duration": [0.25], "bpm": 120}},
		"lines": [{"staff": staff}],
	}

	return scorecycle.formats.AbcTune(parsed=parsed, text=text)


def _convert (tune: scorecycle.formats.AbcTune) -> scorecycle.pipeline.Conversion:

	return scorecycle.pipeline.convert(scorecycle.formats.AbcSource(), tune)


def test_notes_rest_and_chord () -> None:

	"""A bar in D with a rest and a triad."""

	tune = _tune([_note(0.25, 1), _rest(0.25), _note(0.5, 1, 3, 5), _bar()])

	result = _convert(tune)

	assert result.ok
	assert result.text == (
		"// Scale Tune\n"
		"setcpm(30)\n"
		"\n"
		'const t1 = [n("0@1 ~@1 [0,2,4]@2")];\n'
		"\n"
		'cat(t1[0]).scale("D:major").s("gm_piano");\n'
	)


def test_pickup_bar () -> None:

	"""A short first bar is an anacrusis and is not reported."""

	tune = _tune([_note(0.25, 5), _bar(), _note(1.0, 1), _bar()])

	data = scorecycle.formats.AbcSource().extract_events(tune)
	result = _convert(tune)

	assert data.pickup_ms == pytest.approx(500.0)
	assert result.warnings == []
	assert 'const t1 = [n("~@3 4@1"), n("0@1")];' in result.text


def test_repeats_make_sections () -> None:

	"""A repeated first part is main; the short tail is the coda."""

	tune = _tune([
		_bar("bar_left_repeat"),
		_note(1.0, 1), _bar(),
		_note(1.0, 2), _bar("bar_right_repeat"),
		_note(1.0, 3), _bar("bar_thin_thick"),
	])

	result = _convert(tune)

	assert (
		'const t1 = [n("0@1"), n("1@1"), n("2@1")];\n'
		"\n"
		"const main = [t1[0], t1[1]];\n"
		"const coda = [t1[2]];\n"
		"\n"
		'cat(cat(...main), cat(...coda)).scale("D:major").s("gm_piano");\n'
	) in result.text


def test_markers () -> None:

	"""Repeat barlines are recorded on the bars they bound."""

	tune = _tune([
		_note(1.0, 1), _bar("bar_left_repeat"),
		_note(1.0, 1), _bar("bar_dbl_repeat"),
		_note(1.0, 1), _bar("bar_right_repeat"),
	])

	data = scorecycle.formats.AbcSource().extract_events(tune)

	assert data.markers == [{1: scorecycle.bars.REPEAT_BOTH, 2: scorecycle.bars.REPEAT_END}]


def test_tie_across_barline () -> None:

	"""A tied note is one event that the segmenter splits at the bar line."""

	tune = _tune([
		_note(0.5, 0), {"el_type": "note", "duration": 0.5, "pitches": [{"pitch": 1, "startTie": {}}]}, _bar(),
		{"el_type": "note", "duration": 0.5, "pitches": [{"pitch": 1, "endTie": True}]}, _note(0.5, 2), _bar(),
	])

	data = scorecycle.formats.AbcSource().extract_events(tune)
	result = _convert(tune)

	assert [(e.onset_ms, e.duration_ms, e.pitch) for e in data.voices[0]] == [
		(0.0, 1000.0, -1),
		(1000.0, 2000.0, 0),
		(3000.0, 1000.0, 1),
	]
	assert 'const t1 = [n("-1@1 0@1"), n("0@1 1@1")];' in result.text


def test_triplets () -> None:

	"""Three notes in the time of two get equal shares."""

	tune = _tune([
		_note(0.125, 1, startTriplet=3, tripletMultiplier=2 / 3),
		_note(0.125, 2),
		_note(0.125, 3, endTriplet=True),
		_note(0.25, 4),
		_note(0.5, 5),
		_bar(),
	])

	assert 'n("0@1 1@1 2@1 3@3 4@6")' in _convert(tune).text


def test_tempo_in_other_beat_units () -> None:

	"""Tempo marks in dotted or eighth beats are read as quarter notes per minute."""

	source = scorecycle.formats.AbcSource()

	dotted = _tune([_note(1.0, 1), _bar()], meta={"tempo": {"duration": [0.375], "bpm": 80}})
	eighths = _tune([_note(1.0, 1), _bar()], meta={}, text="X:2\nQ:1/8=240\nK:D\n")

	assert source.extract_events(dotted).meta.tempo_bpm == pytest.approx(120.0)
	assert source.extract_events(eighths).meta.tempo_bpm == pytest.approx(120.0)


def test_header_fields_fill_gaps () -> None:

	"""Title, meter and number come from the text when the parse lacks them."""

	tune = _tune([_note(0.75, 1), _bar()], meta={}, text="X:7\nT:Jig\nM:3/4\nK:D\n")
	tune.parsed["lines"][0]["staff"][0].pop("meter")

	data = scorecycle.formats.AbcSource().extract_events(tune)

	assert data.meta.title == "Jig"
	assert (data.meta.meter_numerator, data.meta.meter_denominator) == (3, 4)
	assert data.tune_number == 7


def test_minor_key_with_accidental () -> None:

	"""Sharp minor keys are read from the staff."""

	tune = _tune([_note(1.0, 3), _bar()], key="F#m")

	result = _convert(tune)

	assert '.scale("F#:minor")' in result.text
	assert 'n("0@1")' in result.text


def test_instrument_field () -> None:

	"""A known sound in the I: field is used, an unknown one is ignored."""

	known = _tune([_note(1.0, 1), _bar()], text=ABC_TEXT + "I:gm_violin\n")
	unknown = _tune([_note(1.0, 1), _bar()], text=ABC_TEXT + "I:kazoo\n")

	assert _convert(known).text.endswith('.s("gm_violin");\n')
	assert _convert(unknown).text.endswith('.s("gm_piano");\n')


def test_two_voices () -> None:

	"""Every staff voice becomes its own numbered array."""

	tune = _tune([_note(1.0, 1), _bar()], [_note(1.0, -6), _bar()])

	result = _convert(tune)

	assert 'const t1_v0 = [n("0@1")];' in result.text
	assert 'const t1_v1 = [n("-7@1")];' in result.text
	assert "stack(cat(t1_v0[0]), cat(t1_v1[0]))" in result.text


def test_no_music () -> None:

	"""A tune without staves is an error."""

	tune = scorecycle.formats.AbcTune(parsed={"lines": [{"text": "words only"}]})

	assert _convert(tune).text == "// Error: ABC tune has no music lines\n"


def test_load_json_forms (tmp_path: pathlib.Path) -> None:

	"""A tune, a list of tunes or a tune with its text can be loaded."""

	tune = _tune([_note(1.0, 1), _bar()])
	source = scorecycle.formats.AbcSource()

	plain = tmp_path / "plain.json"
	plain.write_text(json.dumps(tune.parsed))

	listed = tmp_path / "listed.json"
	listed.write_text(json.dumps([tune.parsed]))

	wrapped = tmp_path / "wrapped.json"
	wrapped.write_text(json.dumps({"tune": tune.parsed, "abc": ABC_TEXT}))

	assert source.load(str(plain)).parsed == tune.parsed
	assert source.load(str(listed)).parsed == tune.parsed
	assert source.load(str(wrapped)).text == ABC_TEXT


def test_load_failure (tmp_path: pathlib.Path) -> None:

	"""Bad JSON or an empty list raise a source error."""

	broken = tmp_path / "broken.json"
	broken.write_text("{")

	empty = tmp_path / "empty.json"
	empty.write_text("[]")

	with pytest.raises(scorecycle.source.SourceError):
		scorecycle.formats.AbcSource().load(str(broken))

	with pytest.raises(scorecycle.source.SourceError):
		scorecycle.formats.AbcSource().load(str(empty))
