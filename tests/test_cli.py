import json
import sys
import tempfile
import unittest
from pathlib import Path

from click.testing import CliRunner

# Add parent directory to path so we can import our modules
sys.path.append(str(Path(__file__).parent.parent))

from flutter_depcheck import cli

ALL_OK = ["--gradle-version", "8.3", "--java-version", "17", "--agp-version", "8.1.0", "--kgp-version", "1.9.0"]


class TestCheckCommand(unittest.TestCase):
    def setUp(self):
        self.runner = CliRunner()
        self._tmp = tempfile.TemporaryDirectory()
        self.project_dir = self._tmp.name

    def tearDown(self):
        self._tmp.cleanup()

    def test_all_ok(self):
        result = self.runner.invoke(cli, ["check", self.project_dir, *ALL_OK])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Dependency Version Report", result.output)
        self.assertIn("applicationName:     android.app.Application", result.output)

    def test_warning_exits_zero(self):
        args = ["check", self.project_dir, "--gradle-version", "6.5", "--java-version", "17",
                "--agp-version", "8.1.0", "--kgp-version", "1.9.0", "--format", "json"]
        result = self.runner.invoke(cli, args)
        self.assertEqual(result.exit_code, 0, result.output)
        report = json.loads(result.stdout)
        self.assertEqual(report["outcomes"][0]["status"], "WARN")
        self.assertEqual(report["outcomes"][0]["version"], "6.5.0")
        self.assertEqual(report["outcomes"][0]["threshold"], "7.0.2")
        self.assertIsNone(report["error"])

    def test_fatal_exits_one(self):
        Path(self.project_dir, "depcheck.yaml").write_text(
            "thresholds:\n  gradle:\n    error_below: '5.0.0'\n    warn_below: '7.0.0'\n", encoding='utf-8')
        args = ["check", self.project_dir, "--gradle-version", "4.0.0", "--java-version", "17",
                "--agp-version", "8.1.0", "--kgp-version", "1.9.0", "--format", "json"]
        result = self.runner.invoke(cli, args)
        self.assertEqual(result.exit_code, 1, result.output)
        report = json.loads(result.stdout)
        self.assertEqual(report["outcomes"][0]["status"], "FATAL")
        self.assertIn("4.0.0", report["error"])
        self.assertIn("5.0.0", report["error"])

    def test_skip_flag(self):
        args = ["check", self.project_dir, "--java-version", "1.0", "--android-skip-build-dependency-validation"]
        result = self.runner.invoke(cli, args)
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Dependency checks skipped", result.output)

    def test_multidex_property(self):
        result = self.runner.invoke(cli, ["check", self.project_dir, *ALL_OK, "-P", "multidex-enabled=true"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("io.flutter.app.FlutterMultiDexApplication", result.output)

    def test_bad_config_exits_two(self):
        Path(self.project_dir, "depcheck.yaml").write_text("thresholds:\n  maven:\n    warn_below: '3'\n", encoding='utf-8')
        result = self.runner.invoke(cli, ["check", self.project_dir, *ALL_OK])
        self.assertEqual(result.exit_code, 2)


class TestOtherCommands(unittest.TestCase):
    def setUp(self):
        self.runner = CliRunner()

    def test_parse_version(self):
        result = self.runner.invoke(cli, ["parse-version", "7.0"])
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(result.output.strip(), "7.0.0")

    def test_parse_version_failure(self):
        result = self.runner.invoke(cli, ["parse-version", "abc.0.0"])
        self.assertEqual(result.exit_code, 1)

    def test_thresholds_json(self):
        with self.runner.isolated_filesystem():
            result = self.runner.invoke(cli, ["thresholds", "--format", "json"])
        self.assertEqual(result.exit_code, 0, result.output)
        table = json.loads(result.stdout)
        self.assertEqual(table["gradle"], {"name": "Gradle", "error_below": "0.0.0", "warn_below": "7.0.2"})
        self.assertEqual(table["java"]["warn_below"], "11.0.0")
        self.assertEqual(table["kgp"]["name"], "Kotlin")


if __name__ == '__main__':
    unittest.main()
