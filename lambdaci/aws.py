"""
AWS Lambda deployment of packaged functions.

The Lambda client is passed in explicitly; `AWS.from_session` builds one from
boto3's usual credential chain (environment variables, shared config and
credential files, instance roles), optionally narrowed to a profile and region.
"""

import os
from typing import Optional

import boto3

from lambdaci.function import FunctionConfig
from lambdaci.utils import LoggingBase, LoggingHandlers

# AWS Lambda limit on direct zip uploads
ZIP_UPLOAD_LIMIT = 50 * 1024 * 1024


class AWS(LoggingBase):
    """
    Updates code and handler of existing Lambda functions.

    Attributes:
        client: boto3 Lambda client
    """

    def __init__(self, client, logger_handlers: Optional[LoggingHandlers] = None):
        super().__init__()
        self.client = client
        if logger_handlers is not None:
            self.logging_handlers = logger_handlers

    @staticmethod
    def typename() -> str:
        return "AWS"

    @staticmethod
    def from_session(
        region: Optional[str] = None,
        profile: Optional[str] = None,
        logger_handlers: Optional[LoggingHandlers] = None,
    ) -> "AWS":
        """
        Create a deployment client from the boto3 credential chain.

        Args:
            region: AWS region; the SDK default is used when None
            profile: named profile from the shared AWS config

        Returns:
            AWS: deployment client wrapping a new Lambda client

        Raises:
            botocore.exceptions.BotoCoreError: profile not found or no region configured
        """
        session = boto3.session.Session(profile_name=profile, region_name=region)
        client = session.client(service_name="lambda")
        ret = AWS(client, logger_handlers)
        ret.logging.debug(f"Using AWS region {client.meta.region_name}")
        return ret

    def update_function(self, function: FunctionConfig) -> dict:
        """
        Upload the packaged code of a function and fix its handler if needed.

        When the handler reported by Lambda differs from the function name,
        the function configuration is updated once the code update has settled.

        Args:
            function: function with an existing archive at `package_path`

        Returns:
            dict: `name` confirmed by Lambda and whether the handler was updated

        Raises:
            botocore.exceptions.ClientError: any error reported by Lambda
        """
        package = function.package_path
        code_size = os.path.getsize(package)
        if code_size >= ZIP_UPLOAD_LIMIT:
            self.logging.warning(
                f"Package {package} has {code_size} bytes, "
                f"above the Lambda limit of {ZIP_UPLOAD_LIMIT} bytes for direct uploads."
            )

        with open(package, "rb") as code_body:
            ret = self.client.update_function_code(
                FunctionName=function.name, ZipFile=code_body.read()
            )
        name = ret["FunctionName"]
        self.logging.info(f"Updated code of {name} function.")

        handler_updated = False
        if ret.get("Handler") != function.name:
            self.wait_function_updated(function)
            self.client.update_function_configuration(
                FunctionName=function.name, Handler=function.name
            )
            handler_updated = True
            self.logging.info(
                f"Updated handler of {name} from {ret.get('Handler')} to {function.name}."
            )

        return {"name": name, "handler_updated": handler_updated}

    def wait_function_updated(self, function: FunctionConfig) -> None:
        """
        Block until Lambda finishes applying a code update.
        Lambda rejects configuration changes while an update is in progress.
        """
        self.logging.debug(f"Waiting for Lambda function {function.name} to be updated...")
        waiter = self.client.get_waiter("function_updated_v2")
        waiter.wait(FunctionName=function.name)
