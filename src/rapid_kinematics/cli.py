"""Command line interface: generate RAPID modules from a YAML job file."""

import argparse
import logging
import sys

from .config import load_job
from .errors import RapidKinematicsError
from .io import available_presets
from .rapid import RAPIDGenerator


def setup_logging(verbose: bool = False):
    """Setup logging configuration"""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def generate_command(args) -> int:
    """Generate the program and system modules of a job"""
    try:
        job = load_job(args.job)
    except RapidKinematicsError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    config = job.config
    if args.output_dir:
        config = config.with_output_directory(args.output_dir)

    generator = RAPIDGenerator.from_config(job.robot, config)
    program = generator.create_program_code(job.actions)
    system = generator.create_system_code(job.tools, job.work_objects, job.custom_code)

    print(program)
    print()
    print(system)

    if generator.warnings:
        print(f"\n{len(generator.warnings)} warning(s):", file=sys.stderr)
        for warning in generator.warnings:
            print(f"  - {warning}", file=sys.stderr)
    return 0


def presets_command(args) -> int:
    """List the packaged robot presets"""
    for name in available_presets():
        print(name)
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="rapid-kinematics",
        description="Generate ABB RAPID modules from robot action lists",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  rapid-kinematics generate job.yaml
  rapid-kinematics generate job.yaml -o out/ --verbose
  rapid-kinematics presets
        """
    )
    subparsers = parser.add_subparsers(dest="command")

    generate_parser = subparsers.add_parser("generate", help="Generate RAPID modules from a job file")
    generate_parser.add_argument("job", help="Path to the YAML job file")
    generate_parser.add_argument("-o", "--output-dir", help="Write the .mod and .sys files to this directory")
    generate_parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    generate_parser.set_defaults(func=generate_command)

    presets_parser = subparsers.add_parser("presets", help="List the packaged robot presets")
    presets_parser.set_defaults(func=presets_command)

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 1

    setup_logging(getattr(args, "verbose", False))
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
