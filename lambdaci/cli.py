import logging
import os
import sys
import traceback
from typing import Optional

import click
from botocore.exceptions import BotoCoreError

from lambdaci.aws import AWS
from lambdaci.pipeline import Pipeline
from lambdaci.utils import LoggingHandlers, configure_logging, global_logging, serialize


class ExceptionProcesser(click.Command):
    def __call__(self, *args, **kwargs):
        try:
            return self.main(*args, **kwargs)
        except Exception as e:
            logging.error(e)
            traceback.print_exc()
            sys.exit(1)


@click.command(cls=ExceptionProcesser)
@click.argument(
    "root", default=os.path.curdir, type=click.Path(file_okay=False, resolve_path=True)
)
@click.option("--compiler", default="go", help="Compiler invoked as '<compiler> build'.")
@click.option("--region", default=None, type=str, help="AWS region, SDK default if not set.")
@click.option("--profile", default=None, type=str, help="AWS profile from the shared config.")
@click.option(
    "--fail-fast/--no-fail-fast",
    default=False,
    help="Stop at the first function that fails to deploy.",
)
@click.option(
    "--report",
    default=None,
    type=click.Path(dir_okay=False, writable=True),
    help="Write a JSON summary of all deployments.",
)
@click.option("--output-file", default=None, help="Output filename for logging.")
@click.option("--verbose/--no-verbose", default=False, help="Verbose output.")
def cli(
    root: str,
    compiler: str,
    region: Optional[str],
    profile: Optional[str],
    fail_fast: bool,
    report: Optional[str],
    output_file: Optional[str],
    verbose: bool,
):
    """Build, zip and deploy every function described by a .function.yaml below ROOT."""
    global_logging(verbose)
    configure_logging()
    handlers = LoggingHandlers(verbose=verbose, filename=output_file)

    try:
        deployment = AWS.from_session(region=region, profile=profile, logger_handlers=handlers)
    except BotoCoreError as e:
        logging.error(f"Could not create AWS Lambda client: {e}")
        sys.exit(1)

    pipeline = Pipeline(deployment, compiler, fail_fast, handlers)
    try:
        results = pipeline.run(root)
    except OSError as e:
        pipeline.logging.error(f"Error while reading function directory {root}: {e}")
        sys.exit(1)

    success = pipeline.summary(results)
    if report:
        with open(report, "w") as out_f:
            out_f.write(serialize(results))
        pipeline.logging.info(f"Saved deployment report to {report}")

    sys.exit(0 if success else 1)


def main():
    cli()


if __name__ == "__main__":
    main()
