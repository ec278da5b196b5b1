"""Key signatures and scale-degree conversion.

Every pitch leaving a source adapter is a scalar relative to the tonic of the
piece, so that nothing downstream needs to know about letter names.

Module-level constants:
- `NOTE_NAME_TO_PC`: Maps note names (e.g. `"C"`, `"F#"`, `"Bb"`) to pitch classes (0-11)
- `LETTER_INDEX`: Maps note letters to their diatonic step within the octave (C = 0)
- `MODE_INTERVALS`: Semitone offsets of the major and minor scales
- `FIFTHS_TO_MAJOR` / `FIFTHS_TO_MINOR`: Key signature (sharps positive, flats negative) to tonic

Module-level helpers:
- `parse_key(text)`: Read a key such as `"G"`, `"Em"`, `"F# minor"` into a `Key`.
- `midi_to_degree(midi, key)`: Chromatic MIDI pitch to a diatonic degree of the key.
- `letter_to_degree(letter, octave, key)`: Written note to a diatonic degree of the key.
"""

import dataclasses
import re
import typing


NOTE_NAME_TO_PC: typing.Dict[str, int] = {
	"C": 0,
	"B#": 0,
	"C#": 1,
	"Db": 1,
	"D": 2,
	"D#": 3,
	"Eb": 3,
	"E": 4,
	"Fb": 4,
	"E#": 5,
	"F": 5,
	"F#": 6,
	"Gb": 6,
	"G": 7,
	"G#": 8,
	"Ab": 8,
	"A": 9,
	"A#": 10,
	"Bb": 10,
	"B": 11,
	"Cb": 11,
}

LETTER_INDEX: typing.Dict[str, int] = {
	"C": 0,
	"D": 1,
	"E": 2,
	"F": 3,
	"G": 4,
	"A": 5,
	"B": 6,
}

MODE_INTERVALS: typing.Dict[str, typing.List[int]] = {
	"major": [0, 2, 4, 5, 7, 9, 11],
	"minor": [0, 2, 3, 5, 7, 8, 10],
}

FIFTHS_TO_MAJOR: typing.Dict[int, str] = {
	-7: "Cb", -6: "Gb", -5: "Db", -4: "Ab", -3: "Eb", -2: "Bb", -1: "F",
	0: "C", 1: "G", 2: "D", 3: "A", 4: "E", 5: "B", 6: "F#", 7: "C#",
}

FIFTHS_TO_MINOR: typing.Dict[int, str] = {
	-7: "Ab", -6: "Eb", -5: "Bb", -4: "F", -3: "C", -2: "G", -1: "D",
	0: "A", 1: "E", 2: "B", 3: "F#", 4: "C#", 5: "G#", 6: "D#", 7: "A#",
}

# Octave of the reference tonic: degree 0 is the tonic in the middle-C octave.
REFERENCE_OCTAVE = 4

_KEY_PATTERN = re.compile(r"^\s*([A-Ga-g])([#b]?)\s*(.*)$")
_MINOR_MODES = ("m", "min", "minor", "aeo", "aeolian")


@dataclasses.dataclass(frozen=True)
class Key:

	"""
	A tonic and a mode (``"major"`` or ``"minor"``).
	"""

	root: str = "C"
	mode: str = "major"

	def __post_init__ (self) -> None:

		if self.root not in NOTE_NAME_TO_PC:
			raise ValueError(f"Unknown key root: {self.root!r}. Expected e.g. 'C', 'F#', 'Bb'.")

		if self.mode not in MODE_INTERVALS:
			raise ValueError(f"Unknown key mode: {self.mode!r}. Expected 'major' or 'minor'.")

	@property
	def tonic_pc (self) -> int:

		"""Pitch class of the tonic (0-11)."""

		return NOTE_NAME_TO_PC[self.root]

	@property
	def letter (self) -> str:

		"""The tonic's letter without accidental."""

		return self.root[0]

	@property
	def scale_name (self) -> str:

		"""Scale name in the pattern language, e.g. ``"G:major"``."""

		return f"{self.root}:{self.mode}"


def parse_key (text: typing.Optional[str]) -> Key:

	"""Read a key description and return a `Key`.

	Accepts a tonic letter with optional accidental followed by an optional
	mode word. Anything that does not name a minor mode is treated as major.

	Parameters:
		text: Key text such as ``"G"``, ``"Em"``, ``"Bb minor"`` or ``"F#m"``.

	Returns:
		The parsed key; C major when ``text`` is empty.

	Raises:
		ValueError: If the text does not start with a note letter.

	Example:
		```python
		parse_key("Em").scale_name        # → "E:minor"
		parse_key("Bb").scale_name        # → "Bb:major"
		parse_key("D mixolydian").mode    # → "major"
		```
	"""

	if not text or not text.strip():
		return Key()

	match = _KEY_PATTERN.match(text)

	if match is None:
		raise ValueError(f"Cannot read key from {text!r}")

	root = match.group(1).upper() + match.group(2)
	mode_word = match.group(3).strip().lower()

	mode = "minor" if mode_word.split(" ")[0] in _MINOR_MODES else "major"

	return Key(root=root, mode=mode)


def key_from_fifths (fifths: int, minor: bool = False) -> Key:

	"""Return the key for a key signature given as a count of sharps (positive) or flats (negative)."""

	if not -7 <= fifths <= 7:
		raise ValueError(f"Key signature out of range: {fifths}")

	if minor:
		return Key(root=FIFTHS_TO_MINOR[fifths], mode="minor")

	return Key(root=FIFTHS_TO_MAJOR[fifths], mode="major")


def midi_to_degree (midi: int, key: Key) -> int:

	"""Convert a MIDI note number to a diatonic degree relative to the key's tonic.

	The tonic in octave 4 is degree 0; each octave adds 7. Notes outside the
	scale snap down to the scale step below them.

	Example:
		```python
		midi_to_degree(60, Key("C"))   # → 0
		midi_to_degree(64, Key("C"))   # → 2
		midi_to_degree(61, Key("C"))   # → 0  (C# snaps to C)
		midi_to_degree(55, Key("C"))   # → -3
		```
	"""

	intervals = MODE_INTERVALS[key.mode]
	tonic_midi = 12 * (REFERENCE_OCTAVE + 1) + key.tonic_pc

	distance = midi - tonic_midi
	octave, within = divmod(distance, 12)

	step = sum(1 for interval in intervals if interval <= within) - 1

	return octave * 7 + step


def midi_to_offset (midi: int, key: Key) -> int:

	"""Return the chromatic distance in semitones from the key's tonic in octave 4."""

	return midi - (12 * (REFERENCE_OCTAVE + 1) + key.tonic_pc)


def letter_to_degree (letter: str, octave: int, key: Key) -> int:

	"""Convert a written note (letter and octave, accidentals ignored) to a diatonic degree.

	Example:
		```python
		letter_to_degree("G", 4, Key("G"))   # → 0
		letter_to_degree("B", 4, Key("G"))   # → 2
		letter_to_degree("D", 4, Key("G"))   # → -3
		```
	"""

	steps = octave * 7 + LETTER_INDEX[letter.upper()]
	tonic_steps = REFERENCE_OCTAVE * 7 + LETTER_INDEX[key.letter]

	return steps - tonic_steps
