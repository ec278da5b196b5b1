import dataclasses

import pytest

import conftest
import scorecycle.bars


Note = scorecycle.bars.Note
Rest = scorecycle.bars.Rest


def test_rest_bars_then_content () -> None:

	"""Eight identical rest bars and one bar of music give two unique bars."""

	bars = [conftest.rest_bar(i) for i in range(8)] + [conftest.note_bar(8, 0, 2)]

	result = scorecycle.bars.deduplicate(bars)

	assert len(result.unique) == 2
	assert result.indices == [0, 0, 0, 0, 0, 0, 0, 0, 1]


def test_expand_reconstructs_sequence () -> None:

	"""Collapsing then expanding gives back the original bar sequence."""

	bars = [
		conftest.note_bar(0, 0, 1),
		conftest.note_bar(1, 2, 3),
		conftest.note_bar(2, 0, 1),
		conftest.rest_bar(3),
		conftest.note_bar(4, 2, 3),
	]

	result = scorecycle.bars.deduplicate(bars)

	assert result.expand() == [bar.tokens for bar in bars]
	assert [u.id for u in result.unique] == ["bar0", "bar1", "bar2"]
	assert result.indices == [0, 1, 0, 2, 1]


def test_same_id_iff_same_tokens () -> None:

	"""Bars share a unique bar exactly when their tokens are equal."""

	bars = [
		conftest.tokens_bar(0, [Note((0,), 1), Rest(1)]),
		conftest.tokens_bar(1, [Note((0,), 2), Rest(2)]),
		conftest.tokens_bar(2, [Note((0, 2), 1), Rest(1)]),
		conftest.tokens_bar(3, [Note((0,), 1), Rest(1)]),
	]

	result = scorecycle.bars.deduplicate(bars)

	for i, a in enumerate(bars):
		for j, b in enumerate(bars):
			assert (result.indices[i] == result.indices[j]) == (a.tokens == b.tokens)


def test_add_reuses_existing_bar () -> None:

	"""Adding a known token sequence points at the existing definition."""

	result = scorecycle.bars.deduplicate([conftest.rest_bar(0), conftest.note_bar(1, 4)])

	assert result.add((Rest(1),)) == 0
	assert result.add((Note((5,), 1),)) == 2
	assert result.indices == [0, 1, 0, 2]
	assert len(result.unique) == 3


def test_bar_key () -> None:

	"""The dedup key spells out pitches and units."""

	tokens = [Note((0,), 1), Rest(1), Note((0, 4), 2)]

	assert scorecycle.bars.bar_key(tokens) == "0:1 ~:1 0,4:2"


def test_tokens_are_immutable () -> None:

	"""Tokens are frozen so they can be shared between bars."""

	note = Note((0,), 1)

	with pytest.raises(dataclasses.FrozenInstanceError):
		note.units = 2  # type: ignore[misc]


def test_silence_and_totals () -> None:

	"""A bar reports its unit total and whether it is silent."""

	assert conftest.rest_bar().is_silent
	assert not conftest.note_bar(0, 1, 2).is_silent
	assert conftest.note_bar(0, 1, 2).total_units == 2
	assert Note((0, 4), 1).is_chord
	assert not Note((0,), 1).is_chord
