"""Write a `Composition` out as pattern-language source text.

Output layout:

```
// Title
setcpm(30)

const part0 = [n("0@1 ~@1 2@2"), n("~@1")];

cat(part0[0], part0[1]).scale("C:major").s("gm_piano");
```
"""

import typing

import scorecycle.bars
import scorecycle.combiner


def format_token (token: scorecycle.bars.Token) -> str:

	"""Render one token: ``2@3``, ``~@1`` or ``[0,2,4]@2``."""

	if isinstance(token, scorecycle.bars.Rest):
		return f"~@{token.units}"

	if token.is_chord:
		return "[" + ",".join(str(p) for p in token.pitches) + f"]@{token.units}"

	return f"{token.pitches[0]}@{token.units}"


def format_bar (tokens: typing.Iterable[scorecycle.bars.Token]) -> str:

	"""Render a bar as a space-separated token string."""

	return " ".join(format_token(token) for token in tokens)


def _quoted (text: str) -> str:

	return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


def render_node (node: typing.Any) -> str:

	"""Render a pattern tree node as an expression."""

	if isinstance(node, scorecycle.combiner.BarRef):
		return f"{node.array}[{node.index}]"

	if isinstance(node, scorecycle.combiner.SectionRef):
		return f"cat(...{node.name})"

	if isinstance(node, scorecycle.combiner.Cat):
		return "cat(" + ", ".join(render_node(item) for item in node.items) + ")"

	if isinstance(node, scorecycle.combiner.Stack):
		return "stack(" + ", ".join(render_node(item) for item in node.items) + ")"

	if isinstance(node, scorecycle.combiner.Voiced):
		return f"{render_node(node.expr)}.s({_quoted(node.instrument)})"

	raise TypeError(f"Cannot render {type(node).__name__}")


def render_statement (program: scorecycle.combiner.Program) -> str:

	"""Render the final composition statement, including scale and sound."""

	text = f"{render_node(program.body)}.scale({_quoted(program.scale)})"

	if program.instrument:
		text += f".s({_quoted(program.instrument)})"

	return text + ";"


def render_error (message: str) -> str:

	"""Return the output used when nothing could be converted."""

	return f"// Error: {message}\n"


def render_program (composition: scorecycle.combiner.Composition) -> str:

	"""Render the full program text.

	Title lines and any extra comments come first as ``//`` lines, then the
	tempo statement, one bar array per voice, the section arrays and the final
	statement. The text ends with a newline.
	"""

	lines: typing.List[str] = []

	for line in composition.title.splitlines():
		if line.strip():
			lines.append(f"// {line.strip()}")

	for comment in composition.comments:
		lines.append(f"// {comment}")

	lines.append(f"setcpm({composition.cycles_per_minute})")
	lines.append("")

	for array in composition.arrays:
		literals = ", ".join(f"n({_quoted(format_bar(bar.tokens))})" for bar in array.bars)
		lines.append(f"const {array.name} = [{literals}];")

	if composition.sections:
		lines.append("")

		for section in composition.sections:
			refs = ", ".join(render_node(ref) for ref in section.refs)
			lines.append(f"const {section.name} = [{refs}];")

	lines.append("")
	lines.append(render_statement(composition.program))

	return "\n".join(lines) + "\n"
