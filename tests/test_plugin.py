import sys
import tempfile
import unittest
from pathlib import Path

# Add parent directory to path so we can import our modules
sys.path.append(str(Path(__file__).parent.parent))

from depcheck.checker import PolicyViolation
from depcheck.models import DEFAULT_THRESHOLDS, Dependency, Status
from depcheck.plugin import GradleProject, apply_plugin, parse_properties, resolve_manifest_placeholders
from depcheck.providers import StaticVersionProvider


def providers_for(**versions) -> dict:
    return {dep: StaticVersionProvider(dep, versions.get(dep.key)) for dep in Dependency}


class TestParseProperties(unittest.TestCase):
    def test_key_values_and_comments(self):
        content = "# comment\n! also a comment\norg.gradle.jvmargs=-Xmx4G\nandroid.useAndroidX = true\nflag\nkey: value\n"
        self.assertEqual(parse_properties(content), {
            "org.gradle.jvmargs": "-Xmx4G",
            "android.useAndroidX": "true",
            "flag": "",
            "key": "value",
        })

    def test_splits_on_first_separator(self):
        self.assertEqual(parse_properties("key: a=b\nother=c:d\n"), {"key": "a=b", "other": "c:d"})


class TestGradleProject(unittest.TestCase):
    def test_load_merges_file_and_extra_properties(self):
        with tempfile.TemporaryDirectory() as tmp:
            project_dir = Path(tmp)
            (project_dir / "android").mkdir()
            (project_dir / "android" / "gradle.properties").write_text(
                "multidex-enabled=false\nbase-application-name=com.example.App\n", encoding='utf-8')
            project = GradleProject.load(project_dir, {"multidex-enabled": "true"})
        self.assertEqual(project.get_property("multidex-enabled"), "true")
        self.assertEqual(project.get_property("base-application-name"), "com.example.App")
        self.assertFalse(project.has_property("skipDependencyChecks"))


class TestManifestPlaceholders(unittest.TestCase):
    def test_default_application(self):
        multidex, placeholders = resolve_manifest_placeholders(GradleProject(Path(".")))
        self.assertFalse(multidex)
        self.assertEqual(placeholders, {"applicationName": "android.app.Application"})

    def test_multidex(self):
        project = GradleProject(Path("."), {"multidex-enabled": "TRUE", "base-application-name": "com.example.App"})
        multidex, placeholders = resolve_manifest_placeholders(project)
        self.assertTrue(multidex)
        self.assertEqual(placeholders["applicationName"], "io.flutter.app.FlutterMultiDexApplication")

    def test_base_application_name(self):
        project = GradleProject(Path("."), {"multidex-enabled": "false", "base-application-name": "com.example.App"})
        multidex, placeholders = resolve_manifest_placeholders(project)
        self.assertFalse(multidex)
        self.assertEqual(placeholders["applicationName"], "com.example.App")


class TestApplyPlugin(unittest.TestCase):
    def test_runs_checks(self):
        result = apply_plugin(GradleProject(Path(".")), DEFAULT_THRESHOLDS,
                              providers_for(gradle="6.5", java="17", agp="7.4.2", kgp="1.8.0"))
        self.assertFalse(result.checks_skipped)
        self.assertEqual([o.status for o in result.outcomes], [Status.WARN, Status.OK, Status.OK, Status.OK])
        self.assertEqual(result.manifest_placeholders, {"applicationName": "android.app.Application"})

    def test_skip_property_bypasses_checks(self):
        project = GradleProject(Path("."), {"skipDependencyChecks": "true"})
        thresholds = DEFAULT_THRESHOLDS
        # Would be fatal for Java (error floor 1.1) if checked
        result = apply_plugin(project, thresholds, providers_for(java="1.0"))
        self.assertTrue(result.checks_skipped)
        self.assertEqual(result.outcomes, [])

    def test_fatal_aborts(self):
        with self.assertRaises(PolicyViolation) as ctx:
            apply_plugin(GradleProject(Path(".")), DEFAULT_THRESHOLDS, providers_for(java="1.0"))
        self.assertEqual(ctx.exception.dependency_name, "Java")
        self.assertIn("minimum supported version of 1.1.0", str(ctx.exception))


if __name__ == '__main__':
    unittest.main()
