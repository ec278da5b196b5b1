"""Read rendered bar literals back into tokens.

The renderer writes each bar as a mini-notation string such as
``"0@1 ~@1 [0,4]@2"``. The pipeline parses every literal it is about to emit
and compares the result with the bar it came from.
"""

import re
import typing

import scorecycle.bars


class MiniNotationError(Exception):
	pass


_STEP_PATTERN = re.compile(r"^(~|-?\d+|\[-?\d+(?:,-?\d+)*\])(?:@(\d+))?$")


def _tokenize (text: str) -> typing.List[typing.Tuple[str, int]]:

	"""
	Split a bar literal into (symbol, weight) pairs.
	"0@1 [0,4]@2 ~" -> [("0", 1), ("[0,4]", 2), ("~", 1)]
	"""

	steps: typing.List[typing.Tuple[str, int]] = []

	for raw in text.split():

		match = _STEP_PATTERN.match(raw)

		if match is None:
			raise MiniNotationError(f"Cannot read step {raw!r}")

		weight = int(match.group(2)) if match.group(2) is not None else 1

		if weight <= 0:
			raise MiniNotationError(f"Step {raw!r} has a non-positive weight")

		steps.append((match.group(1), weight))

	return steps


def parse_bar (notation: str) -> typing.Tuple[scorecycle.bars.Token, ...]:

	"""
	Parse a bar literal into `Note` and `Rest` tokens.

	A step without ``@`` has weight 1.

	Example:
		```python
		parse_bar("[0,4]@2 ~@1")
		# → (Note(pitches=(0, 4), units=2), Rest(units=1))
		```

	Raises:
		MiniNotationError: If a step is malformed or has a non-positive weight.
	"""

	tokens: typing.List[scorecycle.bars.Token] = []

	for symbol, weight in _tokenize(notation):

		if symbol == "~":
			tokens.append(scorecycle.bars.Rest(units=weight))

		elif symbol.startswith("["):
			pitches = tuple(int(p) for p in symbol[1:-1].split(","))
			tokens.append(scorecycle.bars.Note(pitches=pitches, units=weight))

		else:
			tokens.append(scorecycle.bars.Note(pitches=(int(symbol),), units=weight))

	return tuple(tokens)
