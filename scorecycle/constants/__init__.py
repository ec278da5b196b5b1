"""Constants for scorecycle.

- ``scorecycle.constants.instruments`` - Sound names understood by the pattern
  language and the General MIDI program map used to pick them.
"""
