"""
Function descriptors and the local half of the deployment cycle.

A descriptor is a `.function.yaml` file placed next to the source file of a
Lambda function:

    name: "my-function"
    fileName: "main.go"

Each descriptor becomes one FunctionConfig, which knows how to compile the
source into `<directory>/<name>`, pack it into `<directory>/<name>.zip` and
remove both artifacts afterwards.
"""

import os
import zipfile
from typing import List

import yaml

from lambdaci.utils import LoggingBase, execute

DESCRIPTOR_NAME = ".function.yaml"


class DescriptorError(ValueError):
    pass


class FunctionConfig(LoggingBase):
    """
    A single function descriptor.

    Attributes:
        name: name of the Lambda function, also used as the handler name
        file_name: source file, relative to the descriptor directory
        directory: absolute directory containing the descriptor
    """

    def __init__(self, name: str, file_name: str, directory: str):
        super().__init__()
        self.name = name
        self.file_name = file_name
        self.directory = directory
        # files written by build() and package(), the only ones cleanup() removes
        self._artifacts: List[str] = []

    @staticmethod
    def typename() -> str:
        return "FunctionConfig"

    @property
    def descriptor_path(self) -> str:
        return os.path.join(self.directory, DESCRIPTOR_NAME)

    @property
    def source_path(self) -> str:
        return os.path.join(self.directory, self.file_name)

    @property
    def build_path(self) -> str:
        """Path of the compiled executable."""
        return os.path.join(self.directory, self.name)

    @property
    def package_path(self) -> str:
        """Path of the zip archive uploaded to Lambda."""
        return os.path.join(self.directory, f"{self.name}.zip")

    def build(self, compiler: str = "go") -> str:
        """
        Compile the source file into a native executable.

        Runs `<compiler> build -o <build_path> <source_path>` and blocks until it exits.

        Args:
            compiler: compiler executable, looked up on PATH

        Returns:
            str: path of the executable

        Raises:
            RuntimeError: the compiler exited with a non-zero code
            OSError: the compiler could not be started
        """
        cmd = [compiler, "build", "-o", self.build_path, self.source_path]
        self.logging.debug(f"Compiling {self.source_path} with: {' '.join(cmd)}")
        existed = os.path.exists(self.build_path)
        try:
            output = execute(cmd, cwd=self.directory)
        except (RuntimeError, OSError):
            # a failed compiler may still leave a partial executable behind
            if not existed:
                self._track(self.build_path)
            raise
        self._track(self.build_path)
        if output:
            self.logging.debug(output)
        self.logging.info(f"Built {self.name} at {self.build_path}")
        return self.build_path

    def package(self) -> str:
        """
        Pack the executable into a zip archive with a single deflated entry.

        The entry is named after the executable and keeps its size, mode and
        modification time. The archive is closed before returning, a failed
        write may leave a partial archive behind.

        Returns:
            str: path of the archive
        """
        existed = os.path.exists(self.package_path)
        try:
            with zipfile.ZipFile(
                self.package_path, "w", compression=zipfile.ZIP_DEFLATED
            ) as archive:
                archive.write(self.build_path, arcname=os.path.basename(self.build_path))
        except OSError:
            if not existed:
                self._track(self.package_path)
            raise
        self._track(self.package_path)
        size = os.path.getsize(self.package_path)
        self.logging.info(f"Packaged {self.name} into {self.package_path}, size {size} bytes")
        return self.package_path

    @property
    def artifacts(self) -> List[str]:
        return list(self._artifacts)

    def _track(self, path: str):
        if os.path.exists(path) and path not in self._artifacts:
            self._artifacts.append(path)

    def cleanup(self) -> bool:
        """
        Remove the files written by `build()` and `package()`.

        Files that were already present before this run are never touched.
        Failures are logged as warnings and never raised.

        Returns:
            bool: True if every artifact was removed
        """
        removed = True
        for path in list(self._artifacts):
            try:
                os.remove(path)
                self._artifacts.remove(path)
                self.logging.debug(f"Removed {path}")
            except FileNotFoundError:
                self._artifacts.remove(path)
            except OSError as e:
                self.logging.warning(f"Could not remove {path}: {e}")
                removed = False
        return removed

    def serialize(self) -> dict:
        return {"name": self.name, "fileName": self.file_name}

    @staticmethod
    def deserialize(dct: dict, directory: str) -> "FunctionConfig":
        """
        Build a config from decoded descriptor content.
        Unknown keys are ignored.

        Raises:
            DescriptorError: when name or fileName is missing, empty or not a string,
                or when the build outputs would overwrite the source or descriptor
        """
        values = {}
        for key in ("name", "fileName"):
            val = dct.get(key)
            if not isinstance(val, str) or not val.strip():
                raise DescriptorError(f"Descriptor field '{key}' must be a non-empty string")
            values[key] = val
        if "/" in values["name"] or values["name"] in (os.curdir, os.pardir):
            raise DescriptorError(f"Function name '{values['name']}' is not a valid file name")
        # build and package outputs must not overwrite the source or the descriptor
        outputs = (values["name"], f"{values['name']}.zip")
        for protected in (values["fileName"], DESCRIPTOR_NAME):
            if os.path.normpath(protected) in outputs:
                raise DescriptorError(
                    f"Function name '{values['name']}' collides with the file {protected}"
                )
        return FunctionConfig(values["name"], values["fileName"], directory)


def _raise_walk_error(err: OSError):
    raise err


def find_function_configs(root: str) -> List[str]:
    """
    Find every descriptor below a root directory.

    :param root: directory to scan recursively.
    :return: full paths of all `.function.yaml` files, in sorted walk order.
    :raises OSError: when the root or any subdirectory cannot be read.
    """
    files: List[str] = []
    for path, dirs, filenames in os.walk(root, onerror=_raise_walk_error):
        dirs.sort()
        if DESCRIPTOR_NAME in filenames:
            files.append(os.path.join(path, DESCRIPTOR_NAME))
    return files


def parse_function_config(path: str) -> FunctionConfig:
    """
    Read and validate a descriptor file.

    :param path: path of the `.function.yaml` file.
    :raises yaml.YAMLError: when the file is not valid YAML.
    :raises DescriptorError: when the content is not a mapping with the required fields.
    """
    with open(path, "r") as descriptor:
        content = yaml.safe_load(descriptor)

    if not isinstance(content, dict):
        raise DescriptorError(f"Descriptor {path} must contain a mapping")

    return FunctionConfig.deserialize(content, os.path.dirname(os.path.abspath(path)))
