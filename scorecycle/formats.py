"""Choose a format adapter for an input file."""

import os
import typing

import scorecycle.source
import scorecycle.sources.abc_notation
import scorecycle.sources.midi
import scorecycle.sources.musicxml


AbcSource = scorecycle.sources.abc_notation.AbcSource
AbcTune = scorecycle.sources.abc_notation.AbcTune
MidiSource = scorecycle.sources.midi.MidiSource
MusicXmlSource = scorecycle.sources.musicxml.MusicXmlSource


EXTENSIONS: typing.Dict[str, str] = {
	".mid": "midi",
	".midi": "midi",
	".xml": "musicxml",
	".musicxml": "musicxml",
	".mxl": "musicxml",
	".json": "abc",
}


def source_for_path (path: str, chromatic: bool = False, split_pitch: typing.Optional[int] = scorecycle.sources.midi.DEFAULT_SPLIT_PITCH) -> scorecycle.source.EventSource:

	"""Pick an adapter from a file extension.

	Raises:
		SourceError: If the extension is not recognised.
	"""

	extension = os.path.splitext(path)[1].lower()
	kind = EXTENSIONS.get(extension)

	if kind == "midi":
		return MidiSource(split_pitch=split_pitch, chromatic=chromatic)

	if kind == "musicxml":
		return MusicXmlSource(chromatic=chromatic)

	if kind == "abc":
		return AbcSource()

	raise scorecycle.source.SourceError(f"Unsupported file type {extension!r}; expected one of {sorted(EXTENSIONS)}")
