import argparse
import asyncio
import dataclasses
import logging
import sys
import typing

import scorecycle.config
import scorecycle.formats
import scorecycle.pipeline
import scorecycle.source


logger = logging.getLogger(__name__)


def parse_args (argv: typing.Optional[typing.List[str]] = None) -> argparse.Namespace:

	"""
	Read the command line.
	"""

	parser = argparse.ArgumentParser(prog="scorecycle", description="Convert ABC, MIDI or MusicXML into bar-based pattern code")
	parser.add_argument("input", help="MIDI (.mid), MusicXML (.xml, .musicxml, .mxl) or parsed ABC tune (.json)")
	parser.add_argument("--config", default="scorecycle.yaml", help="YAML settings file (default: scorecycle.yaml)")
	parser.add_argument("--instrument", help="Sound for every voice, e.g. gm_violin")
	parser.add_argument("--output", help="Write the program here instead of stdout")
	parser.add_argument("--verbose", action="store_true", help="Log every bar")

	return parser.parse_args(argv)


async def run (args: argparse.Namespace, config: scorecycle.config.ConversionConfig) -> scorecycle.pipeline.Conversion:

	"""
	Load the input file off the event loop, then convert it.
	"""

	source = scorecycle.formats.source_for_path(
		args.input,
		chromatic = config.chromatic,
		split_pitch = config.split_pitch if config.split_hands else None
	)

	loop = asyncio.get_running_loop()
	pending = loop.run_in_executor(None, source.load, args.input)

	return await scorecycle.pipeline.convert_when_ready(source, pending, config)


def main (argv: typing.Optional[typing.List[str]] = None) -> int:

	"""
	Main entry point for the scorecycle command.
	"""

	args = parse_args(argv)

	logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

	try:
		config = scorecycle.config.load_config(args.config)

		if args.instrument:
			config = dataclasses.replace(config, instrument=args.instrument)

		conversion = asyncio.run(run(args, config))

	except (scorecycle.source.SourceError, ValueError) as exc:
		logger.error(str(exc))
		print(f"// Error: {exc}")
		return 1

	if args.output:
		with open(args.output, "w") as f:
			f.write(conversion.text)
		logger.info(f"Wrote {args.output}")
	else:
		sys.stdout.write(conversion.text)

	return 0 if conversion.ok else 1


if __name__ == "__main__":
	sys.exit(main())
