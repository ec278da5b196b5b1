"""Align voices and compose them into one pattern tree.

The tree is deliberately small. Leaves point into the bar arrays
(`BarRef`) or at a named section array (`SectionRef`); `Cat` plays its
children one after another, `Stack` plays them together. `Voiced` attaches a
sound to one voice and `Program` carries the scale applied to everything.
"""

import dataclasses
import logging
import typing

import scorecycle.bars
import scorecycle.sections


logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class BarRef:

	"""Entry ``index`` of the bar array ``array``."""

	array: str
	index: int


@dataclasses.dataclass(frozen=True)
class SectionRef:

	"""All bars of a declared section array, in order."""

	name: str


@dataclasses.dataclass(frozen=True)
class Cat:

	items: typing.Tuple[typing.Any, ...]


@dataclasses.dataclass(frozen=True)
class Stack:

	items: typing.Tuple[typing.Any, ...]


@dataclasses.dataclass(frozen=True)
class Voiced:

	expr: typing.Any
	instrument: str


@dataclasses.dataclass(frozen=True)
class Program:

	"""
	The final statement: a pattern, its scale and (when all voices share one) its sound.
	"""

	body: typing.Any
	scale: str
	instrument: typing.Optional[str] = None


Node = typing.Union[BarRef, SectionRef, Cat, Stack, Voiced]


@dataclasses.dataclass
class VoicePart:

	"""
	One deduplicated voice ready to be combined.

	Attributes:
		array: Name of the voice's bar array in the output (``part0``).
		name: Display name (track or part name).
		deduplication: Unique bars and the per-bar index map.
		instrument: Sound name.
	"""

	array: str
	name: str
	deduplication: scorecycle.bars.Deduplication
	instrument: str


@dataclasses.dataclass
class BarArray:

	name: str
	bars: typing.List[scorecycle.bars.UniqueBar]


@dataclasses.dataclass
class SectionArray:

	name: str
	refs: typing.List[BarRef]


@dataclasses.dataclass
class Composition:

	"""
	Everything the renderer needs: header, declarations and the final statement.
	"""

	title: str
	cycles_per_minute: int
	arrays: typing.List[BarArray]
	sections: typing.List[SectionArray]
	program: Program
	comments: typing.List[str] = dataclasses.field(default_factory=list)


def pad_voices (deduplications: typing.Sequence[scorecycle.bars.Deduplication]) -> None:

	"""Pad every voice with full-bar rests until all have as many bars as the longest.

	An existing all-rest unique bar is reused, so padding adds at most one
	definition per voice.

	Example:
		```python
		# voice A: 3 bars, voice B: 1 bar
		pad_voices([a, b])
		len(b.indices)   # → 3
		```
	"""

	if not deduplications:
		return

	longest = max(len(d.indices) for d in deduplications)

	for voice, deduplication in enumerate(deduplications):

		missing = longest - len(deduplication.indices)

		if missing:
			logger.debug(f"Padding voice {voice} with {missing} rest bars")

		for _ in range(missing):
			deduplication.add((scorecycle.bars.Rest(units=1),))


def _section_name (part: VoicePart, section: scorecycle.sections.Section, multi: bool) -> str:

	if multi:
		return f"{part.array}_{section.name}"

	return section.name


def combine (
	parts: typing.Sequence[VoicePart],
	scale: str,
	title: str = "",
	cycles_per_minute: int = 30,
	sections: typing.Optional[typing.Sequence[scorecycle.sections.Section]] = None
) -> Composition:

	"""Pad the voices to equal length and build the composition.

	A single voice plays as ``Cat`` of its bars; several voices are wrapped in
	a ``Stack``. With sections, each voice plays ``Cat`` of its section arrays
	instead. The sound goes on the program when all voices share it, and on
	each voice otherwise.

	Parameters:
		parts: The voices, in output order.
		scale: Scale name such as ``"C:major"``.
		title: Title text for the header comment.
		cycles_per_minute: Tempo statement value.
		sections: Section partition shared by every voice, if any.

	Raises:
		ValueError: If ``parts`` is empty.
	"""

	if not parts:
		raise ValueError("Nothing to combine: no voices")

	pad_voices([part.deduplication for part in parts])

	multi = len(parts) > 1
	arrays: typing.List[BarArray] = []
	section_arrays: typing.List[SectionArray] = []
	expressions: typing.List[Node] = []

	for part in parts:

		indices = part.deduplication.indices
		arrays.append(BarArray(name=part.array, bars=list(part.deduplication.unique)))

		if sections:
			refs: typing.List[Node] = []

			for section in sections:
				name = _section_name(part, section, multi)
				section_arrays.append(SectionArray(
					name = name,
					refs = [BarRef(part.array, indices[i]) for i in range(section.start, section.stop)]
				))
				refs.append(SectionRef(name))

			expressions.append(Cat(tuple(refs)))

		else:
			expressions.append(Cat(tuple(BarRef(part.array, i) for i in indices)))

	instruments = {part.instrument for part in parts}

	if not multi:
		program = Program(body=expressions[0], scale=scale, instrument=parts[0].instrument)

	elif len(instruments) == 1:
		program = Program(body=Stack(tuple(expressions)), scale=scale, instrument=parts[0].instrument)

	else:
		voiced = tuple(Voiced(expr, part.instrument) for expr, part in zip(expressions, parts))
		program = Program(body=Stack(voiced), scale=scale)

	logger.info(
		f"Combined {len(parts)} voice(s), {len(indices)} bars each"
		+ (f", {len(sections)} sections" if sections else "")
	)

	return Composition(
		title = title,
		cycles_per_minute = cycles_per_minute,
		arrays = arrays,
		sections = section_arrays,
		program = program
	)
