import os
import stat
import tempfile
import unittest
from pathlib import Path

from tmplgen.exceptions import FormatError, TemplateError
from tmplgen.formatters import Formatter, NativeFormatter
from tmplgen.generator import run
from tmplgen.jsonc import parse_document
from tmplgen.paths import PathSpec
from tmplgen.templates import bind


class RecordingFormatter(Formatter):
    """Formatter stub that records what it was given."""

    def __init__(self, fail: bool = False):
        self.calls = []
        self.fail = fail

    @property
    def name(self) -> str:
        return "recording"

    def format(self, source, kind):
        self.calls.append((source, kind.name))
        if self.fail:
            raise FormatError("tool said no")
        return source


class TestGenerationPipeline(unittest.TestCase):
    def setUp(self):
        self._td = tempfile.TemporaryDirectory()
        self.root = Path(self._td.name)
        self.data = bind(
            parse_document(b'{"Name": "widget"} // a widget\n'), {"Pkg": "p"}
        )

    def tearDown(self):
        self._td.cleanup()

    def _template(self, name: str, content: str) -> str:
        path = self.root / name
        path.write_text(content, encoding="utf-8")
        return str(path)

    def test_go_output_end_to_end(self):
        tmpl = self._template("out.go.tmpl", 'package p\nvar X = "{{ In.Name }}"\n')
        out = str(self.root / "out.go")

        results = run(self.data, [PathSpec(tmpl, out)], NativeFormatter())

        lines = Path(out).read_text(encoding="utf-8").splitlines()
        self.assertEqual(lines[0], f"// Code generated by {tmpl}. DO NOT EDIT.")
        self.assertEqual(lines[1], "")
        self.assertEqual(lines[2], "package p")
        self.assertIn('var X = "widget"', lines)
        self.assertEqual(len(results), 1)
        self.assertTrue(results[0].formatted)
        self.assertEqual(results[0].size, os.path.getsize(out))

    def test_python_output_uses_hash_marker(self):
        tmpl = self._template("m.py.tmpl", "NAME = {{ In.Name | upper | tojson }}\n")
        out = str(self.root / "m.py")

        run(self.data, [PathSpec(tmpl, out)], NativeFormatter())

        text = Path(out).read_text(encoding="utf-8")
        self.assertTrue(text.startswith(f"# Code generated by {tmpl}. DO NOT EDIT.\n\n"))
        self.assertIn('NAME = "WIDGET"', text)

    def test_generic_output_is_not_marked_or_formatted(self):
        tmpl = self._template("notes.txt.tmpl", "{{ D.Pkg }}: {{ In.Name }}   \n\n\n")
        out = str(self.root / "notes.txt")
        formatter = RecordingFormatter()

        results = run(self.data, [PathSpec(tmpl, out)], formatter)

        self.assertEqual(Path(out).read_text(encoding="utf-8"), "p: widget   \n\n\n")
        self.assertEqual(formatter.calls, [])
        self.assertFalse(results[0].formatted)

    def test_formatter_receives_marker_and_content(self):
        tmpl = self._template("a.tmpl", "package p\n")
        out = str(self.root / "a.go")
        formatter = RecordingFormatter()

        run(self.data, [PathSpec(tmpl, out)], formatter)

        source, kind = formatter.calls[0]
        self.assertEqual(kind, "go")
        self.assertEqual(
            source, f"// Code generated by {tmpl}. DO NOT EDIT.\n\npackage p\n".encode()
        )

    def test_unresolvable_field_writes_nothing(self):
        tmpl = self._template("bad.go.tmpl", "package p\nvar X = {{ In.Missing.Field }}\n")
        out = self.root / "bad.go"

        with self.assertRaises(TemplateError) as ctx:
            run(self.data, [PathSpec(tmpl, str(out))], NativeFormatter())

        self.assertIn(tmpl, str(ctx.exception))
        self.assertFalse(out.exists())

    def test_parse_error(self):
        tmpl = self._template("syntax.tmpl", "{% for x in %}\n")
        with self.assertRaises(TemplateError):
            run(self.data, [PathSpec(tmpl, str(self.root / "s.txt"))], NativeFormatter())

    def test_missing_template(self):
        missing = str(self.root / "missing.tmpl")
        with self.assertRaises(TemplateError) as ctx:
            run(self.data, [PathSpec(missing, str(self.root / "m"))], NativeFormatter())
        self.assertIn(missing, str(ctx.exception))

    def test_formatter_failure_writes_nothing(self):
        tmpl = self._template("f.tmpl", "package p\n")
        out = self.root / "f.go"

        with self.assertRaises(FormatError) as ctx:
            run(self.data, [PathSpec(tmpl, str(out))], RecordingFormatter(fail=True))

        self.assertIn(tmpl, str(ctx.exception))
        self.assertIn("tool said no", str(ctx.exception))
        self.assertFalse(out.exists())

    def test_stops_at_first_failure(self):
        first = self._template("one.tmpl", "one\n")
        bad = self._template("two.tmpl", "{{ In.Nope }}\n")
        third = self._template("three.tmpl", "three\n")
        specs = [
            PathSpec(first, str(self.root / "one")),
            PathSpec(bad, str(self.root / "two")),
            PathSpec(third, str(self.root / "three")),
        ]

        with self.assertRaises(TemplateError):
            run(self.data, specs, NativeFormatter())

        self.assertEqual((self.root / "one").read_text(encoding="utf-8"), "one\n")
        self.assertFalse((self.root / "two").exists())
        self.assertFalse((self.root / "three").exists())

    def test_overwrites_existing_output(self):
        tmpl = self._template("o.tmpl", "new\n")
        out = self.root / "o"
        out.write_text("old contents\n", encoding="utf-8")

        run(self.data, [PathSpec(tmpl, str(out))], NativeFormatter())

        self.assertEqual(out.read_text(encoding="utf-8"), "new\n")

    @unittest.skipIf(os.name == "nt", "POSIX permission bits")
    def test_output_inherits_template_mode(self):
        tmpl = self._template("run.sh.tmpl", "#!/bin/sh\necho {{ In.Name }}\n")
        os.chmod(tmpl, 0o750)
        out = self.root / "run.sh"

        run(self.data, [PathSpec(tmpl, str(out))], NativeFormatter())

        self.assertEqual(stat.S_IMODE(os.stat(out).st_mode), 0o750)

    @unittest.skipIf(os.name == "nt", "POSIX permission bits")
    def test_read_only_output_is_regenerated(self):
        tmpl = self._template("ro.txt.tmpl", "{{ D.Pkg }}\n")
        os.chmod(tmpl, 0o444)
        out = self.root / "ro.txt"
        spec = PathSpec(tmpl, str(out))

        run(self.data, [spec], NativeFormatter())
        run(bind({}, {"Pkg": "second"}), [spec], NativeFormatter())

        self.assertEqual(out.read_text(encoding="utf-8"), "second\n")
        self.assertEqual(stat.S_IMODE(os.stat(out).st_mode), 0o444)

    def test_go_string_literal_survives_native_formatter(self):
        tmpl = self._template(
            "raw.go.tmpl", "package p\n\nvar Doc = `{{ In.Name }}   \n\n\nend`\n"
        )
        out = self.root / "raw.go"

        run(self.data, [PathSpec(tmpl, str(out))], NativeFormatter())

        self.assertIn("var Doc = `widget   \n\n\nend`\n", out.read_text(encoding="utf-8"))


if __name__ == "__main__":
    unittest.main()
