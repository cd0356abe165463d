import json
import os
import tempfile
import unittest

from lambdaci.pipeline import DeploymentResult
from lambdaci.utils import LoggingBase, LoggingHandlers, execute, serialize


class Component(LoggingBase):
    @staticmethod
    def typename() -> str:
        return "Component"


class LoggingLayer(unittest.TestCase):
    def setUp(self):
        self.tmp_dir = tempfile.TemporaryDirectory()
        self.handlers = []

    def tearDown(self):
        for handlers in self.handlers:
            if handlers.handler:
                handlers.handler.close()
        self.tmp_dir.cleanup()

    def handlers_for(self, name: str, verbose: bool) -> LoggingHandlers:
        handlers = LoggingHandlers(verbose=verbose, filename=os.path.join(self.tmp_dir.name, name))
        self.handlers.append(handlers)
        return handlers

    def read(self, name: str) -> str:
        with open(os.path.join(self.tmp_dir.name, name)) as f:
            return f.read()

    def test_log_name(self):
        component = Component()
        self.assertTrue(component.log_name.startswith("Component-"))

    def test_file_handler_levels(self):
        component = Component()
        component.logging_handlers = self.handlers_for("quiet.log", verbose=False)
        component.logging.debug("hidden detail")
        component.logging.info("deployed")
        component.logging.warning("cleanup problem")

        content = self.read("quiet.log")
        self.assertNotIn("hidden detail", content)
        self.assertIn("INFO", content)
        self.assertIn("deployed", content)
        self.assertIn("WARNING", content)

    def test_verbose_file_handler(self):
        component = Component()
        component.logging_handlers = self.handlers_for("verbose.log", verbose=True)
        component.logging.debug("compiler output")
        self.assertIn("compiler output", self.read("verbose.log"))

    def test_replacing_handlers_detaches_previous_file(self):
        component = Component()
        component.logging_handlers = self.handlers_for("first.log", verbose=False)
        component.logging_handlers = self.handlers_for("second.log", verbose=False)
        component.logging.error("build failed")

        self.assertNotIn("build failed", self.read("first.log"))
        self.assertIn("build failed", self.read("second.log"))

    def test_console_only(self):
        component = Component()
        component.logging_handlers = LoggingHandlers(verbose=False)
        self.assertFalse(component.logging.propagate)
        self.assertFalse(component.logging.verbose)


class Execute(unittest.TestCase):
    def test_output(self):
        self.assertEqual(execute(["sh", "-c", "echo out; echo err >&2"]), "out\nerr\n")

    def test_failure(self):
        with self.assertRaises(RuntimeError) as ctx:
            execute(["sh", "-c", "echo broken; exit 3"])
        self.assertIn("exit code 3", str(ctx.exception))
        self.assertIn("broken", str(ctx.exception))

    def test_missing_command(self):
        with self.assertRaises(OSError):
            execute(["lambda-ci-no-such-command"])


class Serialize(unittest.TestCase):
    def test_list_of_results(self):
        result = DeploymentResult("/a/b/.function.yaml")
        result.name = "foo"
        data = json.loads(serialize([result]))
        self.assertEqual(data[0]["descriptor"], "/a/b/.function.yaml")
        self.assertEqual(data[0]["stage"], "discovered")
        self.assertFalse(data[0]["success"])


if __name__ == "__main__":
    unittest.main()
