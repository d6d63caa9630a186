import tempfile
import unittest
from pathlib import Path

from tmplgen.config import GeneratorConfig, load_config
from tmplgen.exceptions import ConfigError, UsageError


class TestLoadConfig(unittest.TestCase):
    def setUp(self):
        self._td = tempfile.TemporaryDirectory()
        self.root = Path(self._td.name)

    def tearDown(self):
        self._td.cleanup()

    def _config(self, text: str) -> Path:
        path = self.root / "tmplgen.json"
        path.write_text(text, encoding="utf-8")
        return path

    def test_defaults(self):
        config = load_config()
        self.assertEqual(config, GeneratorConfig())
        self.assertEqual(config.template_ext, ".tmpl")
        self.assertFalse(config.use_external)

    def test_file_with_comments(self):
        path = self._config(
            """{
  // run goimports on Go outputs
  "use_external": true,
  "external_commands": {"go": ["goimports", "-local", "example.com"]},
  /* shared names */
  "variables": {"Pkg": "compute"}
}
"""
        )
        config = load_config(path)
        self.assertTrue(config.use_external)
        self.assertEqual(
            config.external_commands["go"], ["goimports", "-local", "example.com"]
        )
        self.assertEqual(config.variables, {"Pkg": "compute"})

    def test_overrides_win_and_variables_merge(self):
        path = self._config('{"use_external": true, "variables": {"A": "1", "B": "2"}}')
        config = load_config(
            path, {"use_external": False, "variables": {"B": "3", "C": "4"}}
        )
        self.assertFalse(config.use_external)
        self.assertEqual(config.variables, {"A": "1", "B": "3", "C": "4"})

    def test_missing_file(self):
        with self.assertRaises(ConfigError):
            load_config(self.root / "nope.json")

    def test_invalid_json(self):
        with self.assertRaises(ConfigError):
            load_config(self._config("{nope"))

    def test_invalid_utf8(self):
        path = self.root / "tmplgen.json"
        path.write_bytes(b'{"variables": {"A": "\xff"}}')
        with self.assertRaises(ConfigError) as ctx:
            load_config(path)
        self.assertIn(str(path), str(ctx.exception))

    def test_use_external_must_be_bool(self):
        with self.assertRaises(ConfigError) as ctx:
            load_config(self._config('{"use_external": "no"}'))
        self.assertIn("use_external", str(ctx.exception))
        self.assertTrue(load_config(self._config('{"use_external": true}')).use_external)

    def test_not_an_object(self):
        with self.assertRaises(ConfigError):
            load_config(self._config("[1, 2]"))

    def test_unknown_key(self):
        with self.assertRaises(ConfigError) as ctx:
            load_config(self._config('{"package_name": "main"}'))
        self.assertIn("package_name", str(ctx.exception))

    def test_bad_extension(self):
        with self.assertRaises(ConfigError):
            load_config(overrides={"template_ext": "tmpl"})
        with self.assertRaises(ConfigError):
            load_config(overrides={"template_ext": "."})

    def test_bad_commands(self):
        with self.assertRaises(ConfigError):
            load_config(self._config('{"external_commands": {"go": "goimports"}}'))
        with self.assertRaises(ConfigError):
            load_config(self._config('{"external_commands": {"go": []}}'))

    def test_config_error_is_usage_error(self):
        self.assertTrue(issubclass(ConfigError, UsageError))


if __name__ == "__main__":
    unittest.main()
