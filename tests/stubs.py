import os
import stat
from typing import Optional
from unittest.mock import MagicMock

# Invoked as: <compiler> build -o <output> <source>
COPY_COMPILER = """#!/bin/sh
cp "$4" "$3"
"""

FAILING_COMPILER = """#!/bin/sh
echo "$4: undefined: main" >&2
exit 2
"""

# Writes a truncated executable before failing.
PARTIAL_COMPILER = """#!/bin/sh
printf 'partial' > "$3"
exit 1
"""


def write_compiler(directory: str, script: str = COPY_COMPILER, name: str = "fake-go") -> str:
    path = os.path.join(directory, name)
    with open(path, "w") as f:
        f.write(script)
    os.chmod(path, os.stat(path).st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def write_function(
    root: str,
    subdir: str,
    name: Optional[str],
    file_name: Optional[str],
    source: Optional[bytes] = b"package main\n\nfunc main() {}\n",
) -> str:
    """Create a function directory with a descriptor and, optionally, its source file."""
    directory = os.path.join(root, subdir)
    os.makedirs(directory, exist_ok=True)
    lines = []
    if name is not None:
        lines.append(f'name: "{name}"')
    if file_name is not None:
        lines.append(f'fileName: "{file_name}"')
    with open(os.path.join(directory, ".function.yaml"), "w") as f:
        f.write("\n".join(lines) + "\n")
    if source is not None and file_name:
        with open(os.path.join(directory, file_name), "wb") as f:
            f.write(source)
    return directory


def lambda_client(handler: Optional[str] = None) -> MagicMock:
    """
    Lambda client double answering update_function_code with the requested
    function name and the given handler, or the function name when None.
    """
    client = MagicMock()

    def update_function_code(FunctionName, ZipFile):
        return {
            "FunctionName": FunctionName,
            "Handler": FunctionName if handler is None else handler,
            "CodeSize": len(ZipFile),
        }

    client.update_function_code.side_effect = update_function_code
    return client
