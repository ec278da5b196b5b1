"""Bar-level data: fragments, tokens, bar slots and their deduplication.

A `BarSlot` starts life in the segmenter as a list of millisecond
`Fragment` objects, gets integer units from the quantizer and a token
sequence from the chord grouper. Once frozen, its tokens are the identity
used by `deduplicate()`.
"""

import dataclasses
import typing


REPEAT_START = "repeat_start"
REPEAT_END = "repeat_end"
REPEAT_BOTH = "repeat_both"


@dataclasses.dataclass
class Fragment:

	"""
	A note or rest placed inside one bar.

	Created by the segmenter in milliseconds; ``units`` and ``offset_units``
	are filled in by the quantizer.
	"""

	offset_ms: float
	duration_ms: float
	pitch: typing.Optional[int] = None
	chord_group: typing.Optional[typing.Hashable] = None
	units: int = 0
	offset_units: int = 0

	@property
	def is_rest (self) -> bool:

		"""Return True if this fragment is silence."""

		return self.pitch is None

	@property
	def end_ms (self) -> float:

		"""Return the bar-local end time."""

		return self.offset_ms + self.duration_ms


@dataclasses.dataclass(frozen=True)
class Note:

	"""
	A single note or a chord.

	``pitches`` holds one degree for a single note, two or more (ascending)
	for a chord.
	"""

	pitches: typing.Tuple[int, ...]
	units: int

	@property
	def is_chord (self) -> bool:

		"""Return True if more than one pitch sounds."""

		return len(self.pitches) > 1


@dataclasses.dataclass(frozen=True)
class Rest:

	"""Silence lasting a number of units."""

	units: int


Token = typing.Union[Note, Rest]


@dataclasses.dataclass
class BarSlot:

	"""
	One bar of one voice.

	Attributes:
		index: Bar number within the voice (0-indexed).
		voice: Voice index.
		fragments: Notes and rests placed by the segmenter.
		tokens: Quantized output tokens (a tuple once frozen).
		bar_type: Repeat marker attached to this bar, if any.
		pickup: True if this is an anacrusis bar padded with a leading rest.
		unit_ms: Milliseconds per quantized unit.
		target_units: Bar length expressed in quantized units.
	"""

	index: int
	voice: int = 0
	fragments: typing.List[Fragment] = dataclasses.field(default_factory=list)
	tokens: typing.Sequence[Token] = ()
	bar_type: typing.Optional[str] = None
	pickup: bool = False
	unit_ms: float = 0.0
	target_units: int = 0

	@property
	def total_units (self) -> int:

		"""Return the sum of token durations."""

		return sum(token.units for token in self.tokens)

	@property
	def is_silent (self) -> bool:

		"""Return True if the bar holds no notes."""

		if self.tokens:
			return all(isinstance(token, Rest) for token in self.tokens)

		return all(fragment.is_rest for fragment in self.fragments)

	def freeze (self) -> None:

		"""Fix the token sequence so it can serve as a deduplication key."""

		self.tokens = tuple(self.tokens)


@dataclasses.dataclass(frozen=True)
class UniqueBar:

	"""One distinct token sequence, shared by every bar that has it."""

	index: int
	tokens: typing.Tuple[Token, ...]

	@property
	def id (self) -> str:

		"""Return a stable symbolic name (``bar0``, ``bar1`` ...)."""

		return f"bar{self.index}"


@dataclasses.dataclass
class Deduplication:

	"""
	Unique bars of a voice plus, for each original bar, the unique bar it maps to.
	"""

	unique: typing.List[UniqueBar] = dataclasses.field(default_factory=list)
	indices: typing.List[int] = dataclasses.field(default_factory=list)

	def expand (self) -> typing.List[typing.Tuple[Token, ...]]:

		"""Rebuild the original ordered sequence of token tuples."""

		return [self.unique[i].tokens for i in self.indices]

	def add (self, tokens: typing.Sequence[Token]) -> int:

		"""Append a bar, reusing an existing unique bar when the tokens match, and return its index."""

		tokens = tuple(tokens)

		for unique in self.unique:
			if unique.tokens == tokens:
				self.indices.append(unique.index)
				return unique.index

		unique = UniqueBar(index=len(self.unique), tokens=tokens)
		self.unique.append(unique)
		self.indices.append(unique.index)

		return unique.index


@dataclasses.dataclass
class Voice:

	"""
	An ordered bar sequence with its displayed identity.
	"""

	name: str
	bars: typing.List[BarSlot] = dataclasses.field(default_factory=list)
	instrument: typing.Optional[str] = None
	index: int = 0


def bar_key (tokens: typing.Iterable[Token]) -> str:

	"""Serialize a token sequence into its exact-match key (``"0:1 ~:1 0,4:2"``)."""

	parts: typing.List[str] = []

	for token in tokens:
		if isinstance(token, Rest):
			parts.append(f"~:{token.units}")
		else:
			parts.append(",".join(str(p) for p in token.pitches) + f":{token.units}")

	return " ".join(parts)


def deduplicate (bars: typing.Iterable[BarSlot]) -> Deduplication:

	"""Collapse structurally identical bars into one definition each.

	Equality is exact on the serialized token sequence. Unique bars keep the
	order of their first occurrence, and ``indices`` has one entry per input
	bar, so ``result.expand()`` reproduces the input token sequences.

	Example:
		```python
		result = deduplicate(bars)          # bars: A A B A
		[u.id for u in result.unique]       # → ["bar0", "bar1"]
		result.indices                      # → [0, 0, 1, 0]
		```
	"""

	result = Deduplication()
	seen: typing.Dict[str, int] = {}

	for bar in bars:

		key = bar_key(bar.tokens)

		if key not in seen:
			seen[key] = len(result.unique)
			result.unique.append(UniqueBar(index=seen[key], tokens=tuple(bar.tokens)))

		result.indices.append(seen[key])

	return result
