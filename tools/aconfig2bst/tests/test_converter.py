"""Tests for the full converter pipeline and the CLI."""

import contextlib
import io
import os
import shutil
import sys
import tempfile
import unittest

import yaml

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from aconfig2bst.cli import main
from aconfig2bst.config import ReleaseConfig
from aconfig2bst.converter import Converter

RELEASE_TREE = {
    "build/release/some_release/Android.bp": '''
        aconfig_value_set {
            name: "aconfig_value_set-platform_build_release-some_release",
            srcs: ["*/Android.bp"],
        }
    ''',
    "build/release/some_release/android.foo/Android.bp": '''
        aconfig_values {
            name: "aconfig-values-platform_build_release-some_release-android.foo-all",
            package: "android.foo",
            srcs: ["*.textproto"],
        }
    ''',
    "build/release/some_release/android.foo/flag.textproto": "",
    "build/release/some_release/android.bar/Android.bp": '''
        aconfig_values {
            name: "aconfig-values-platform_build_release-some_release-android.bar-all",
            package: "android.bar",
            srcs: ["*.textproto"],
        }
    ''',
    "build/release/some_release/android.bar/flag.textproto": "",
    "frameworks/foo/Android.bp": '''
        aconfig_declarations {
            name: "foo_flags",
            package: "android.foo",
            container: "system",
            srcs: ["foo.aconfig"],
        }
    ''',
    "frameworks/foo/foo.aconfig": "",
    "frameworks/bar/Android.bp": '''
        aconfig_declarations {
            name: "bar_flags",
            package: "android.bar",
            container: "com.android.bar",
            exportable: true,
            srcs: ["bar.aconfig"],
        }
    ''',
    "frameworks/bar/bar.aconfig": "",
}

SOME_RELEASE = "aconfig_value_set-platform_build_release-some_release"


class TreeTestCase(unittest.TestCase):

    def setUp(self):
        self.root = tempfile.mkdtemp(prefix="aconfig2bst-")
        self.addCleanup(shutil.rmtree, self.root)

    def write_tree(self, files):
        for rel, contents in files.items():
            path = os.path.join(self.root, rel)
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, "w") as f:
                f.write(contents)

    def element(self, result, filename):
        matches = [e for e in result.elements if e["filename"] == filename]
        self.assertEqual(len(matches), 1, [e["filename"] for e in result.elements])
        return matches[0]["content"]


class TestConverter(TreeTestCase):

    def test_value_set_from_globs(self):
        self.write_tree(RELEASE_TREE)
        config = ReleaseConfig({
            "RELEASE_ACONFIG_VALUE_SETS": SOME_RELEASE,
            "RELEASE_ACONFIG_FLAG_DEFAULT_PERMISSION": "READ_WRITE",
            "RELEASE_VERSION": "36",
        })
        result = Converter(self.root, config, output_prefix="aconfig").convert()

        self.assertEqual(result.errors, [])
        self.assertEqual(result.aggregation, {"": {
            "android.bar": ["build/release/some_release/android.bar/flag.textproto"],
            "android.foo": ["build/release/some_release/android.foo/flag.textproto"],
        }})
        self.assertEqual(len(result.elements), 3)

        foo = self.element(result, "aconfig/frameworks/foo/foo_flags.bst")
        self.assertEqual(foo["kind"], "aconfig")
        variables = foo["variables"]
        self.assertEqual(variables["package"], "android.foo")
        self.assertEqual(variables["declarations"], "--declarations frameworks/foo/foo.aconfig")
        self.assertEqual(variables["values"],
                         "--values build/release/some_release/android.foo/flag.textproto")
        self.assertEqual(variables["default-permission"], "--default-permission READ_WRITE")
        self.assertEqual(variables["release-version"], "36")
        self.assertEqual(variables["cache-file"], "intermediate.pb")
        self.assertEqual(variables["dump-file"], "intermediate.txt")
        self.assertEqual(foo["sources"][0]["path"], os.path.abspath(self.root))
        self.assertEqual(foo["sources"][0]["files"], [
            "frameworks/foo/foo.aconfig",
            "build/release/some_release/android.foo/flag.textproto",
        ])

        self.assertEqual(foo["public"]["aconfig"],
                         {"package": "android.foo", "container": "system", "exportable": False})
        bar = self.element(result, "aconfig/frameworks/bar/bar_flags.bst")
        self.assertTrue(bar["public"]["aconfig"]["exportable"])

        combined = self.element(result, "aconfig/all_aconfig_declarations.bst")
        self.assertIn("aconfig/frameworks/foo/foo_flags.bst", combined["depends"])
        self.assertIn("aconfig/frameworks/bar/bar_flags.bst", combined["depends"])
        self.assertIn("--cache /aconfig/frameworks/foo/foo_flags/intermediate.pb",
                      combined["variables"]["cache-files"])
        self.assertEqual(combined["variables"]["all-pb"], "all_aconfig_declarations.pb")
        self.assertEqual(combined["variables"]["dist-textproto"], "flags.textproto")

    def test_extra_release_configs(self):
        self.write_tree(RELEASE_TREE)
        config = ReleaseConfig({
            "RELEASE_ACONFIG_EXTRA_RELEASE_CONFIGS": "config2",
            "RELEASE_ACONFIG_VALUE_SETS_config2": SOME_RELEASE,
            "RELEASE_ACONFIG_FLAG_DEFAULT_PERMISSION": "READ_WRITE",
            "RELEASE_ACONFIG_FLAG_DEFAULT_PERMISSION_config2": "READ_ONLY",
        })
        result = Converter(self.root, config).convert()

        self.assertEqual(result.errors, [])
        self.assertEqual(sorted(result.aggregation), ["", "config2"])
        self.assertEqual(result.aggregation[""], {})
        self.assertEqual(len(result.elements), 6)

        default = self.element(result, "frameworks/bar/bar_flags.bst")
        self.assertEqual(default["variables"]["values"], "")
        extra = self.element(result, "frameworks/bar/bar_flags-config2.bst")
        self.assertEqual(extra["variables"]["cache-file"], "intermediate-config2.pb")
        self.assertEqual(extra["variables"]["dump-file"], "intermediate-config2.txt")
        self.assertEqual(extra["variables"]["default-permission"], "--default-permission READ_ONLY")
        self.assertEqual(extra["variables"]["container"], "com.android.bar")

        combined = self.element(result, "all_aconfig_declarations-config2.bst")
        self.assertEqual(combined["variables"]["all-pb"], "all_aconfig_declarations-config2.pb")
        self.assertEqual(combined["variables"]["dist-pb"], "flags-config2.pb")
        self.assertNotIn("frameworks/bar/bar_flags.bst", combined["depends"])

    def test_unrelated_select_does_not_stop_conversion(self):
        tree = dict(RELEASE_TREE)
        tree["external/zlib/Android.bp"] = '''
            cc_library {
                name: "libz",
                cflags: select(arch(), {
                    "arm": ["-marm"],
                    default: [],
                }),
            }
        '''
        self.write_tree(tree)
        config = ReleaseConfig({"RELEASE_ACONFIG_VALUE_SETS": SOME_RELEASE})
        result = Converter(self.root, config).convert()
        self.assertEqual(result.errors, [])
        self.assertEqual(len(result.elements), 3)
        self.assertIn("cc_library 'libz'", result.skipped)

    def test_misnamed_values_module(self):
        tree = dict(RELEASE_TREE)
        tree["build/release/some_release/android.bar/Android.bp"] = '''
            aconfig_values {
                name: "aconfig-values-platform_build_release-some_release-android_bar-all",
                package: "android.bar",
                srcs: ["*.textproto"],
            }
        '''
        self.write_tree(tree)
        result = Converter(self.root).convert()
        self.assertEqual(result.elements, [])
        self.assertEqual(len(result.errors), 1)
        self.assertIn(
            'module "aconfig-values-platform_build_release-some_release-android.bar-all" '
            'not found. Rename the aconfig_values module defined in '
            '"build/release/some_release/android.bar/Android.bp"',
            result.errors[0],
        )

    def test_duplicate_package(self):
        tree = dict(RELEASE_TREE)
        tree["vendor/Android.bp"] = '''
            aconfig_declarations {
                name: "other_foo_flags",
                package: "android.foo",
                container: "vendor",
                srcs: ["foo.aconfig"],
            }
        '''
        tree["vendor/foo.aconfig"] = ""
        self.write_tree(tree)
        result = Converter(self.root).convert()
        self.assertEqual(result.elements, [])
        self.assertEqual(len(result.errors), 1)
        self.assertIn("2 aconfig_declarations found for package android.foo", result.errors[0])

    def test_unknown_value_set_in_release_config(self):
        self.write_tree(RELEASE_TREE)
        config = ReleaseConfig({"RELEASE_ACONFIG_VALUE_SETS": "foo_flags"})
        result = Converter(self.root, config).convert()
        self.assertEqual(len(result.errors), 1)
        self.assertIn("must be a aconfig_value_set module", result.errors[0])

    def test_write_elements(self):
        self.write_tree(RELEASE_TREE)
        converter = Converter(self.root, ReleaseConfig({"RELEASE_ACONFIG_VALUE_SETS": SOME_RELEASE}))
        result = converter.convert()
        out = os.path.join(self.root, "elements")
        converter.write_elements(result, out)
        with open(os.path.join(out, "frameworks/foo/foo_flags.bst")) as f:
            written = yaml.safe_load(f)
        self.assertEqual(written, self.element(result, "frameworks/foo/foo_flags.bst"))


class TestCli(TreeTestCase):

    def run_cli(self, *argv):
        stdout, stderr = io.StringIO(), io.StringIO()
        with contextlib.redirect_stdout(stdout), contextlib.redirect_stderr(stderr):
            code = main(list(argv))
        return code, stdout.getvalue(), stderr.getvalue()

    def test_convert(self):
        self.write_tree(RELEASE_TREE)
        out = os.path.join(self.root, "elements")
        code, stdout, _ = self.run_cli(
            "convert", self.root, "--output-dir", out,
            "--flag", f"RELEASE_ACONFIG_VALUE_SETS={SOME_RELEASE}")
        self.assertEqual(code, 0)
        self.assertIn("Generated 3 element(s)", stdout)
        self.assertTrue(os.path.isfile(os.path.join(out, "aconfig/all_aconfig_declarations.bst")))

    def test_check_duplicate(self):
        self.write_tree({
            "a/Android.bp": 'aconfig_declarations { name: "a", package: "com.example.package", '
                            'container: "system", srcs: ["a.aconfig"] }',
            "a/a.aconfig": "",
            "b/Android.bp": 'aconfig_declarations { name: "b", package: "com.example.package", '
                            'container: "system", srcs: ["b.aconfig"] }',
            "b/b.aconfig": "",
        })
        code, _, stderr = self.run_cli("check", self.root)
        self.assertEqual(code, 1)
        self.assertIn("2 aconfig_declarations found for package com.example.package", stderr)

    def test_info(self):
        self.write_tree(RELEASE_TREE)
        code, stdout, _ = self.run_cli(
            "info", self.root, "--flag", f"RELEASE_ACONFIG_VALUE_SETS={SOME_RELEASE}")
        self.assertEqual(code, 0)
        self.assertIn("foo_flags (android.foo)", stdout)
        self.assertIn("android.bar: 1 value file(s)", stdout)

    def test_missing_tree(self):
        code, _, stderr = self.run_cli("check", os.path.join(self.root, "nope"))
        self.assertEqual(code, 1)
        self.assertIn("directory not found", stderr)


if __name__ == "__main__":
    unittest.main()
