"""
Common interface of the format adapters in ``scorecycle.sources``.
"""

import abc
import typing

import scorecycle.chords
import scorecycle.events
import scorecycle.quantizer


class SourceError(Exception):

	"""Raised when a document cannot be turned into events (empty, unreadable, missing required data)."""


class EventSource (abc.ABC):

	"""Abstract base for format adapters.

	An adapter walks an already-parsed document and returns canonical events
	plus metadata. It also declares how the rest of the pipeline should treat
	its output:

	- ``fill_gaps``: True for timing-based sources (silence is implicit),
	  False for score-based ones (rests are written out).
	- ``chord_mode``: ``"group"`` when the source marks chords explicitly,
	  ``"timing"`` otherwise.
	- ``quantize_mode``: ``"fixed"`` when timestamps are exact fractions of a
	  beat, ``"minimal"`` otherwise.
	"""

	name: str = "source"
	fill_gaps: bool = True
	chord_mode: str = scorecycle.chords.TIMING
	quantize_mode: str = scorecycle.quantizer.MINIMAL

	@abc.abstractmethod
	def load (self, path: str) -> typing.Any:

		"""Read and parse a file into the document type ``extract_events`` accepts."""

		...

	@abc.abstractmethod
	def extract_events (self, document: typing.Any) -> scorecycle.events.SourceData:

		"""Return per-voice events and metadata for a parsed document.

		Raises:
			SourceError: If the document holds nothing usable.
		"""

		...
