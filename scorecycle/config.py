"""Conversion settings and their YAML file.

A config file has two optional sections:

```yaml
conversion:
  rest_epsilon_ms: 10
  tolerance_ms: 1.0
  quantize_tolerance: 0.01
  max_subdivision: 8
  max_multiplier: 64
  fill_gaps: null          # null = the source's own policy
  chord_mode: null         # "group" / "timing"
  quantize_mode: null      # "minimal" / "fixed"
  detect_sections: true
  trim_silent_bars: true
  chromatic: false
  split_hands: true        # split MIDI tracks into high and low voices
  split_pitch: 60          # at middle C
output:
  instrument: null         # e.g. "gm_violin"
  array_prefix: part
```
"""

import dataclasses
import logging
import os
import typing

import yaml

import scorecycle.chords
import scorecycle.constants.instruments
import scorecycle.events
import scorecycle.quantizer
import scorecycle.segmenter


logger = logging.getLogger(__name__)


@dataclasses.dataclass
class ConversionConfig:

	"""
	Tunable settings for one conversion.

	``fill_gaps``, ``chord_mode`` and ``quantize_mode`` default to None, which
	keeps the policy the source adapter declares.
	"""

	rest_epsilon_ms: float = scorecycle.events.DEFAULT_REST_EPSILON_MS
	tolerance_ms: float = scorecycle.segmenter.DEFAULT_TOLERANCE_MS
	quantize_tolerance: float = scorecycle.quantizer.DEFAULT_TOLERANCE
	max_subdivision: int = scorecycle.quantizer.DEFAULT_MAX_SUBDIVISION
	max_multiplier: int = scorecycle.quantizer.DEFAULT_MAX_MULTIPLIER
	fill_gaps: typing.Optional[bool] = None
	chord_mode: typing.Optional[str] = None
	quantize_mode: typing.Optional[str] = None
	detect_sections: bool = True
	trim_silent_bars: bool = True
	chromatic: bool = False
	split_hands: bool = True
	split_pitch: int = 60
	instrument: typing.Optional[str] = None
	array_prefix: str = "part"

	def __post_init__ (self) -> None:

		if self.chord_mode is not None and self.chord_mode not in scorecycle.chords.CHORD_MODES:
			raise ValueError(f"chord_mode must be one of {scorecycle.chords.CHORD_MODES}, got {self.chord_mode!r}")

		if self.quantize_mode is not None and self.quantize_mode not in scorecycle.quantizer.QUANTIZE_MODES:
			raise ValueError(f"quantize_mode must be one of {scorecycle.quantizer.QUANTIZE_MODES}, got {self.quantize_mode!r}")

		if self.max_subdivision < 1 or self.max_multiplier < 1:
			raise ValueError("max_subdivision and max_multiplier must be at least 1")

		if self.instrument is not None and not scorecycle.constants.instruments.is_valid_sound(self.instrument):
			logger.warning(f"Unknown instrument {self.instrument!r}; it will be used as given")

	@classmethod
	def from_dict (cls, data: typing.Optional[typing.Dict[str, typing.Any]]) -> "ConversionConfig":

		"""Build a config from the parsed YAML mapping, ignoring unknown keys with a warning."""

		if not data:
			return cls()

		known = {field.name for field in dataclasses.fields(cls)}
		values: typing.Dict[str, typing.Any] = {}

		for section in ("conversion", "output"):

			for name, value in (data.get(section) or {}).items():

				if name not in known:
					logger.warning(f"Ignoring unknown setting {section}.{name}")
					continue

				values[name] = value

		return cls(**values)


def load_config (config_path: str = "scorecycle.yaml") -> ConversionConfig:

	"""
	Load configuration from a YAML file.
	"""

	if not os.path.exists(config_path):
		logger.warning(f"Config file {config_path} not found. Using defaults.")
		return ConversionConfig()

	with open(config_path, "r") as f:
		return ConversionConfig.from_dict(yaml.safe_load(f))
