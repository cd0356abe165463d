"""
lambda-ci: build Go functions found in a source tree and deploy them to AWS Lambda.

Each function is described by a `.function.yaml` next to its source file;
every descriptor goes through build, zip and code upload, one at a time.
"""

from .version import __version__  # noqa
from .function import FunctionConfig, find_function_configs, parse_function_config  # noqa
from .aws import AWS  # noqa
from .pipeline import Pipeline, DeploymentResult, Stage  # noqa
