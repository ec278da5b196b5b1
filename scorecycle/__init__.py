"""
Scorecycle - convert ABC, MIDI and MusicXML into bar-based pattern code.

A score is played back in a live-coding pattern language as a sequence of
cycles, one cycle per bar. Scorecycle reads the notes of a piece, cuts them
into bars, expresses each bar's rhythm as the smallest integer ratios that
keep its proportions and writes the result as mini-notation:

```
// Minuet in G
setcpm(40)

const part0 = [n("0@1 ~@1 2@2"), n("[0,2,4]@1")];

cat(part0[0], part0[1], part0[0]).scale("G:major").s("gm_piano");
```

How a piece is turned into bars:

- **Bars.** Notes crossing a bar line are split into tied fragments; silence
  becomes explicit rests; a pickup bar is padded with a leading rest.
- **Rhythm.** Each bar's durations are reduced to coprime integers, either
  relative to the shortest note or against a fixed beat subdivision.
- **Chords.** Simultaneous notes, or notes the source marks as one chord,
  merge into ``[d1,d2]`` tokens.
- **Repetition.** Identical bars are written once and referenced by index.
  Repeat barlines name sections (``intro``, ``main``, ``coda`` ...).
- **Voices.** Tracks, parts and ABC voices are padded to equal length and
  played together with ``stack``.

Pitches are scale degrees relative to the key in the source, so the output
applies ``.scale("<tonic>:<mode>")``.

Usage:

```
python -m scorecycle song.mid --instrument gm_violin --output song.js
```

Package-level exports: ``convert``, ``convert_when_ready``, ``Conversion``,
``ConversionConfig``, ``load_config``, ``source_for_path``.
"""

import scorecycle.config
import scorecycle.formats
import scorecycle.pipeline


Conversion = scorecycle.pipeline.Conversion
ConversionConfig = scorecycle.config.ConversionConfig
convert = scorecycle.pipeline.convert
convert_when_ready = scorecycle.pipeline.convert_when_ready
load_config = scorecycle.config.load_config
source_for_path = scorecycle.formats.source_for_path
