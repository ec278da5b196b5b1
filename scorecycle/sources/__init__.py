"""Format adapters: each turns one kind of parsed document into canonical events.

- ``scorecycle.sources.abc_notation`` - parsed ABC tunes (abcjs JSON plus optional text).
- ``scorecycle.sources.midi`` - Standard MIDI Files, read with mido.
- ``scorecycle.sources.musicxml`` - partwise MusicXML, plain or compressed (``.mxl``).

Pick one by file name with ``scorecycle.formats.source_for_path``.
"""
