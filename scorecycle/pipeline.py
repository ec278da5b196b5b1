"""Run a parsed document through every stage and produce pattern code.

```
EventSource.extract_events → normalize_events → segment_bars → quantize_slot
    → group_chords → deduplicate → (shared_sections) → combine → render_program
```

`convert()` never raises: input problems become an ``// Error:`` program,
a voice whose bar grid cannot be built is dropped and reported, and bars whose
units do not add up to the bar length are reported as warnings.
"""

import dataclasses
import logging
import typing

import scorecycle.bars
import scorecycle.chords
import scorecycle.combiner
import scorecycle.config
import scorecycle.constants.instruments
import scorecycle.events
import scorecycle.mini_notation
import scorecycle.quantizer
import scorecycle.render
import scorecycle.sections
import scorecycle.segmenter
import scorecycle.source


logger = logging.getLogger(__name__)


@dataclasses.dataclass
class Conversion:

	"""
	The result of one conversion.

	Attributes:
		text: The generated program (or an error comment).
		warnings: Data inconsistencies that did not stop the conversion.
		errors: Problems that dropped a voice or the whole conversion.
	"""

	text: str
	warnings: typing.List[str] = dataclasses.field(default_factory=list)
	errors: typing.List[str] = dataclasses.field(default_factory=list)

	@property
	def ok (self) -> bool:

		"""True when every voice was converted."""

		return not self.errors


def _policy (override: typing.Any, default: typing.Any) -> typing.Any:

	return default if override is None else override


def build_bars (
	events: typing.Sequence[scorecycle.events.Event],
	meta: scorecycle.events.SourceMeta,
	source: scorecycle.source.EventSource,
	config: scorecycle.config.ConversionConfig,
	voice: int = 0,
	markers: typing.Optional[typing.Dict[int, str]] = None,
	pickup_ms: float = 0.0
) -> typing.List[scorecycle.bars.BarSlot]:

	"""Turn one voice's events into frozen, tokenized bars.

	Raises:
		ConfigurationError: If the metadata gives no usable bar length.
	"""

	bar_length_ms = meta.bar_length_ms

	fill_gaps = _policy(config.fill_gaps, source.fill_gaps)
	chord_mode = _policy(config.chord_mode, source.chord_mode)
	quantize_mode = _policy(config.quantize_mode, source.quantize_mode)

	normalized = scorecycle.events.normalize_events(events, config.rest_epsilon_ms)

	bars = scorecycle.segmenter.segment_bars(
		normalized,
		bar_length_ms,
		fill_gaps = fill_gaps,
		tolerance_ms = config.tolerance_ms,
		pickup_ms = pickup_ms,
		markers = markers,
		voice = voice
	)

	for bar in bars:

		scorecycle.quantizer.quantize_slot(
			bar,
			bar_length_ms,
			mode = quantize_mode,
			meter_numerator = meta.meter_numerator,
			tolerance = config.quantize_tolerance,
			max_subdivision = config.max_subdivision,
			max_multiplier = config.max_multiplier
		)

		scorecycle.chords.group_chords(bar, chord_mode)
		bar.freeze()

	return bars


def _reads_back (bar: scorecycle.bars.BarSlot) -> bool:

	try:
		return scorecycle.mini_notation.parse_bar(scorecycle.render.format_bar(bar.tokens)) == tuple(bar.tokens)

	except scorecycle.mini_notation.MiniNotationError:
		return False


def check_bars (bars: typing.Iterable[scorecycle.bars.BarSlot], voice_name: str) -> typing.List[str]:

	"""Return a warning for every bar whose literal is unreadable or whose units miss the bar length.

	Each bar is rendered and parsed back; a literal that does not give the
	bar's own tokens is reported. Pickup bars are exempt from the length check.
	"""

	warnings: typing.List[str] = []

	for bar in bars:

		if not _reads_back(bar):
			message = f"{voice_name}, bar {bar.index + 1}: {scorecycle.render.format_bar(bar.tokens)!r} does not read back as written"
			logger.warning(message)
			warnings.append(message)

		if bar.pickup or bar.total_units == bar.target_units:
			continue

		message = f"{voice_name}, bar {bar.index + 1}: {bar.total_units} units, expected {bar.target_units}"
		logger.warning(message)
		warnings.append(message)

	return warnings


def trim_silent_bars (voices: typing.List[typing.List[scorecycle.bars.BarSlot]]) -> None:

	"""Drop all-rest bars, in place, without losing alignment between voices.

	Trailing silent bars are removed from each voice on its own. Leading ones
	are removed only as far as every voice starts silent. Each voice keeps at
	least one bar.
	"""

	for bars in voices:
		while len(bars) > 1 and bars[-1].is_silent:
			bars.pop()

	lead = min(
		min(next((i for i, bar in enumerate(bars) if not bar.is_silent), len(bars)), len(bars) - 1)
		for bars in voices
	)

	if lead <= 0:
		return

	logger.debug(f"Trimming {lead} leading silent bars")

	for bars in voices:
		del bars[:lead]
		for bar in bars:
			bar.index -= lead


def _array_names (count: int, prefix: str, tune_number: typing.Optional[int]) -> typing.List[str]:

	if tune_number is not None:
		if count == 1:
			return [f"t{tune_number}"]
		return [f"t{tune_number}_v{i}" for i in range(count)]

	return [f"{prefix}{i}" for i in range(count)]


def convert (
	source: scorecycle.source.EventSource,
	document: typing.Any,
	config: typing.Optional[scorecycle.config.ConversionConfig] = None
) -> Conversion:

	"""Convert a parsed document into a pattern program.

	Parameters:
		source: The adapter matching the document's format.
		document: The parsed document (``mido.MidiFile``, an XML root element,
			an `AbcTune`).
		config: Conversion settings; defaults when omitted.

	Returns:
		A `Conversion`. On failure its text is an ``// Error: ...`` comment and
		``ok`` is False.

	Example:
		```python
		result = convert(MidiSource(), mido.MidiFile("song.mid"))
		print(result.text)
		```
	"""

	config = config or scorecycle.config.ConversionConfig()
	warnings: typing.List[str] = []
	errors: typing.List[str] = []

	try:
		data = source.extract_events(document)
		meta = data.meta

		voices: typing.List[typing.List[scorecycle.bars.BarSlot]] = []
		kept: typing.List[int] = []

		for index, events in enumerate(data.voices):

			name = data.voice_name(index)

			try:
				bars = build_bars(events, meta, source, config, index, data.voice_markers(index), data.pickup_ms)

			except scorecycle.events.ConfigurationError as exc:
				message = f"{name}: {exc}"
				logger.error(f"Dropping voice {message}")
				errors.append(message)
				continue

			if not bars:
				logger.info(f"{name}: no events, skipped")
				continue

			voices.append(bars)
			kept.append(index)

		if not voices:
			message = errors[0] if errors else "No notes found"
			return Conversion(text=scorecycle.render.render_error(message), warnings=warnings, errors=errors or [message])

		if config.trim_silent_bars:
			trim_silent_bars(voices)

		for index, bars in zip(kept, voices):
			warnings.extend(check_bars(bars, data.voice_name(index)))

		sections = scorecycle.sections.shared_sections(voices) if config.detect_sections else None

		arrays = _array_names(len(voices), config.array_prefix, data.tune_number)
		parts: typing.List[scorecycle.combiner.VoicePart] = []

		for array, index, bars in zip(arrays, kept, voices):
			parts.append(scorecycle.combiner.VoicePart(
				array = array,
				name = data.voice_name(index),
				deduplication = scorecycle.bars.deduplicate(bars),
				instrument = config.instrument or data.voice_instrument(index) or scorecycle.constants.instruments.DEFAULT_SOUND
			))

		composition = scorecycle.combiner.combine(
			parts,
			scale = meta.key.scale_name,
			title = meta.title,
			cycles_per_minute = meta.cycles_per_minute,
			sections = sections
		)
		composition.comments = [f"Error: {error}" for error in errors]

		text = scorecycle.render.render_program(composition)

	except scorecycle.source.SourceError as exc:
		logger.error(f"Cannot convert: {exc}")
		return Conversion(text=scorecycle.render.render_error(str(exc)), warnings=warnings, errors=errors + [str(exc)])

	except Exception as exc:
		logger.exception("Conversion failed")
		return Conversion(text=scorecycle.render.render_error(str(exc) or type(exc).__name__), warnings=warnings, errors=errors + [str(exc)])

	logger.info(f"Converted {len(parts)} voice(s) with {len(warnings)} warning(s)")

	return Conversion(text=text, warnings=warnings, errors=errors)


async def convert_when_ready (
	source: scorecycle.source.EventSource,
	pending: typing.Awaitable[typing.Any],
	config: typing.Optional[scorecycle.config.ConversionConfig] = None
) -> Conversion:

	"""Wait for the document to be parsed, then convert it synchronously.

	The await on ``pending`` is the only suspension point; everything after it
	runs to completion without yielding. A failed parse is reported like any
	other input error.

	Example:
		```python
		loop = asyncio.get_running_loop()
		pending = loop.run_in_executor(None, source.load, "song.mid")
		result = await convert_when_ready(source, pending)
		```
	"""

	try:
		document = await pending

	except scorecycle.source.SourceError as exc:
		logger.error(f"Cannot load input: {exc}")
		return Conversion(text=scorecycle.render.render_error(str(exc)), errors=[str(exc)])

	except Exception as exc:
		logger.exception("Loading the input failed")
		return Conversion(text=scorecycle.render.render_error(str(exc) or type(exc).__name__), errors=[str(exc)])

	return convert(source, document, config)
