import pytest

import scorecycle.events
import scorecycle.segmenter


Event = scorecycle.events.Event


def _layout (bar):

	"""Return (offset, duration, pitch) triples of a bar's fragments."""

	return [(f.offset_ms, f.duration_ms, f.pitch) for f in bar.fragments]


def test_single_bar_keeps_explicit_rest () -> None:

	"""Note, rest and note filling one bar stay in one bar, in order."""

	events = [Event(0, 500, 0), Event(500, 500), Event(1000, 1000, 2)]

	bars = scorecycle.segmenter.segment_bars(events, bar_length_ms=2000)

	assert len(bars) == 1
	assert _layout(bars[0]) == [(0, 500, 0), (500, 500, None), (1000, 1000, 2)]


def test_gap_becomes_rest_in_timing_mode () -> None:

	"""Silence between events is written as a rest when gaps are filled."""

	events = [Event(0, 500, 0), Event(1500, 500, 1)]

	bars = scorecycle.segmenter.segment_bars(events, bar_length_ms=2000)

	assert _layout(bars[0]) == [(0, 500, 0), (500, 1000, None), (1500, 500, 1)]


def test_gap_left_open_in_score_mode () -> None:

	"""Score-based sources write their own rests, so gaps are not filled."""

	events = [Event(0, 500, 0), Event(1500, 500, 1)]

	bars = scorecycle.segmenter.segment_bars(events, bar_length_ms=2000, fill_gaps=False)

	assert _layout(bars[0]) == [(0, 500, 0), (1500, 500, 1)]


def test_note_crossing_bar_line_is_split () -> None:

	"""A note over the bar line becomes two tied fragments with the same pitch."""

	events = [Event(1500, 1000, 3)]

	bars = scorecycle.segmenter.segment_bars(events, bar_length_ms=2000)

	assert len(bars) == 2
	assert _layout(bars[0]) == [(0, 1500, None), (1500, 500, 3)]
	assert _layout(bars[1]) == [(0, 500, 3), (500, 1500, None)]


def test_note_longer_than_a_bar_is_split_repeatedly () -> None:

	"""A note spanning several bars is cut at every bar line."""

	bars = scorecycle.segmenter.segment_bars([Event(0, 5000, 0)], bar_length_ms=2000)

	assert len(bars) == 3
	assert _layout(bars[0]) == [(0, 2000, 0)]
	assert _layout(bars[1]) == [(0, 2000, 0)]
	assert _layout(bars[2]) == [(0, 1000, 0), (1000, 1000, None)]


def test_empty_bar_becomes_full_rest () -> None:

	"""A bar with no events holds one full-bar rest."""

	events = [Event(0, 2000, 0), Event(4000, 2000, 1)]

	bars = scorecycle.segmenter.segment_bars(events, bar_length_ms=2000, fill_gaps=False)

	assert len(bars) == 3
	assert _layout(bars[1]) == [(0, 2000, None)]
	assert [bar.index for bar in bars] == [0, 1, 2]


def test_trailing_bar_is_padded () -> None:

	"""The last bar is completed with a rest."""

	bars = scorecycle.segmenter.segment_bars([Event(0, 500, 0)], bar_length_ms=2000)

	assert _layout(bars[0]) == [(0, 500, 0), (500, 1500, None)]


def test_overhang_within_tolerance_is_not_split () -> None:

	"""A note ending a hair after the bar line stays in its bar."""

	bars = scorecycle.segmenter.segment_bars([Event(1000, 1000.5, 0)], bar_length_ms=2000)

	assert len(bars) == 1
	assert bars[0].fragments[-1].end_ms == 2000


def test_pickup_gets_leading_rest () -> None:

	"""An anacrusis is padded at the front so later bar lines fall on the beat."""

	events = [Event(0, 500, 4), Event(500, 2000, 0)]

	bars = scorecycle.segmenter.segment_bars(events, bar_length_ms=2000, pickup_ms=500)

	assert len(bars) == 2
	assert bars[0].pickup
	assert _layout(bars[0]) == [(0, 1500, None), (1500, 500, 4)]
	assert _layout(bars[1]) == [(0, 2000, 0)]


def test_score_mode_underfilled_first_bar_becomes_pickup () -> None:

	"""In score mode a short first bar is moved to the end behind a leading rest."""

	events = [Event(0, 1000, 4), Event(2000, 2000, 0)]

	bars = scorecycle.segmenter.segment_bars(events, bar_length_ms=2000, fill_gaps=False)

	assert bars[0].pickup
	assert _layout(bars[0]) == [(0, 1000, None), (1000, 1000, 4)]


def test_markers_copied_to_bars () -> None:

	"""Repeat markers end up on the bars they are keyed by."""

	events = [Event(0, 6000, 0)]

	bars = scorecycle.segmenter.segment_bars(events, bar_length_ms=2000, markers={2: "repeat_end"})

	assert [bar.bar_type for bar in bars] == [None, None, "repeat_end"]


def test_non_positive_bar_length_is_configuration_error () -> None:

	"""A zero bar length must fail instead of looping."""

	with pytest.raises(scorecycle.segmenter.ConfigurationError):
		scorecycle.segmenter.segment_bars([Event(0, 500, 0)], bar_length_ms=0)

	with pytest.raises(scorecycle.events.ConfigurationError):
		scorecycle.segmenter.segment_bars([Event(0, 500, 0)], bar_length_ms=-100)


def test_no_events_no_bars () -> None:

	"""An empty voice has no bars."""

	assert scorecycle.segmenter.segment_bars([], bar_length_ms=2000) == []
