import time
from enum import Enum
from typing import List, Optional

import yaml
from botocore.exceptions import BotoCoreError, ClientError

from lambdaci.aws import AWS
from lambdaci.function import FunctionConfig, find_function_configs, parse_function_config
from lambdaci.utils import LoggingBase, LoggingHandlers

# Errors that fail a single descriptor without stopping the run.
DEPLOYMENT_ERRORS = (OSError, RuntimeError, ValueError, yaml.YAMLError, ClientError, BotoCoreError)


class Stage(str, Enum):
    DISCOVERED = "discovered"
    PARSED = "parsed"
    BUILT = "built"
    PACKAGED = "packaged"
    DEPLOYED = "deployed"
    CLEANED_UP = "cleaned-up"


class DeploymentResult:
    """
    Outcome of processing one descriptor.

    Attributes:
        descriptor: path of the descriptor file
        name: function name, known once the descriptor was parsed
        stage: last stage completed
        success: the function was deployed
        error: message of the failure, if any
        handler_updated: the handler name had to be corrected
        duration: processing time in seconds
    """

    def __init__(self, descriptor: str):
        self.descriptor = descriptor
        self.name: Optional[str] = None
        self.stage = Stage.DISCOVERED
        self.success = False
        self.error: Optional[str] = None
        self.handler_updated = False
        self.duration = 0.0

    def serialize(self) -> dict:
        return {
            "descriptor": self.descriptor,
            "name": self.name,
            "stage": self.stage.value,
            "success": self.success,
            "error": self.error,
            "handler_updated": self.handler_updated,
            "duration": self.duration,
        }


class Pipeline(LoggingBase):
    """
    Builds, packages and deploys every function found below a root directory.

    Descriptors are processed one at a time. A failed descriptor is recorded
    and the run moves on to the next one, unless `fail_fast` is set.
    """

    def __init__(
        self,
        deployment: AWS,
        compiler: str = "go",
        fail_fast: bool = False,
        logger_handlers: Optional[LoggingHandlers] = None,
    ):
        super().__init__()
        self.deployment = deployment
        self.compiler = compiler
        self.fail_fast = fail_fast
        if logger_handlers is not None:
            self.logging_handlers = logger_handlers

    @staticmethod
    def typename() -> str:
        return "Pipeline"

    def run(self, root: str) -> List[DeploymentResult]:
        """
        Process all descriptors below `root`.

        Raises:
            OSError: the directory tree could not be scanned
        """
        files = find_function_configs(root)
        self.logging.info(f"Found {len(files)} function descriptors under {root}")

        results: List[DeploymentResult] = []
        for idx, path in enumerate(files):
            result = self.process(path)
            results.append(result)
            if not result.success and self.fail_fast:
                skipped = len(files) - idx - 1
                if skipped:
                    self.logging.error(f"Stopping after failure, {skipped} descriptors skipped.")
                break
        return results

    def process(self, path: str) -> DeploymentResult:
        result = DeploymentResult(path)
        function: Optional[FunctionConfig] = None
        step = "parse"
        begin = time.time()
        try:
            function = parse_function_config(path)
            if self.logging_handlers is not None:
                function.logging_handlers = self.logging_handlers
            result.name = function.name
            result.stage = Stage.PARSED

            step = "build"
            function.build(self.compiler)
            result.stage = Stage.BUILT

            step = "package"
            function.package()
            result.stage = Stage.PACKAGED

            step = "deploy"
            ret = self.deployment.update_function(function)
            result.handler_updated = ret["handler_updated"]
            result.stage = Stage.DEPLOYED
            result.success = True
        except DEPLOYMENT_ERRORS as e:
            result.error = f"{step} failed: {e}"
            self.logging.error(f"Error while processing function config at {path}: {result.error}")
        finally:
            if function is not None and function.cleanup() and result.success:
                result.stage = Stage.CLEANED_UP
            result.duration = time.time() - begin
        return result

    def summary(self, results: List[DeploymentResult]) -> bool:
        """
        Log one line per processed descriptor.

        Returns:
            bool: True if every descriptor was deployed
        """
        for result in results:
            label = result.name or result.descriptor
            if result.success:
                self.logging.info(f"{label}: deployed in {result.duration:.2f}s")
            else:
                self.logging.error(f"{label}: {result.error} (reached {result.stage.value})")
        succeeded = sum(1 for result in results if result.success)
        msg = f"Deployed {succeeded} of {len(results)} functions."
        if succeeded == len(results):
            self.logging.info(msg)
            return True
        self.logging.error(msg)
        return False
