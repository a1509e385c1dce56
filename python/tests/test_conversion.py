"""
End-to-end tests for the conversion pipeline in both modes.
"""

import base64
import re
import unittest
from pathlib import Path
from unittest.mock import patch

from archive_ops import (
    ArchiveEncodingError,
    ConfigurationError,
    ConversionConfig,
    ConversionPipeline,
    InputNotFoundError,
    LayerPlan,
    NoEligibleFilesError,
    PasswordError,
    PasswordMode,
    ProgressReporter,
    convert,
)
from archive_ops.conversion import bounded_worker_count
from html_renderer import render_html_file
from .test_utils import SAMPLE_TREE, TEST_SECRET, TempDirTestCase, read_members

PAYLOAD_RE = re.compile(r'<textarea id="payload" readonly>(.*?)</textarea>', re.S)


class RecordingReporter(ProgressReporter):
    def __init__(self):
        self.totals = []
        self.progress = []

    def set_total(self, total):
        self.totals.append(total)

    def on_progress(self, count, total_size, label):
        self.progress.append((count, total_size, label))


def embedded_payload(html_path: Path) -> bytes:
    content = html_path.read_text(encoding="utf-8")
    return base64.b64decode(PAYLOAD_RE.search(content).group(1))


class ConversionTestCase(TempDirTestCase):
    def setUp(self):
        super().setUp()
        self.root = self.make_tree(SAMPLE_TREE)
        self.output = Path(self.temp_dir) / "out"

    def make_config(self, **overrides) -> ConversionConfig:
        values = {
            "input_path": str(self.root),
            "output_dir": str(self.output),
            "password_mode": PasswordMode.NONE,
        }
        values.update(overrides)
        return ConversionConfig(**values)


class TestWholeTreeMode(ConversionTestCase):
    """Compressed mode: one page for the whole tree."""

    def test_double_layer_with_key_file(self):
        config = self.make_config(
            whole_tree=True,
            password_mode=PasswordMode.RANDOM,
            display_password=False,
        )
        summary = ConversionPipeline(config).run()

        html_path = self.output / "docs.html"
        self.assertEqual(summary.outputs, [html_path])
        self.assertEqual(summary.units_processed, 1)

        secret = (self.output / "docs.html.key").read_bytes().decode("utf-8")
        self.assertEqual(len(secret), 16)

        outer = read_members(embedded_payload(html_path), secret)
        inner = read_members(outer["docs_outer.zip"], secret)
        self.assertEqual(
            sorted(inner),
            ["docs/a.txt", "docs/b.log", "docs/sub/c.txt", "docs/sub/deeper/d.md"],
        )
        self.assertEqual(inner["docs/sub/deeper/d.md"], b"# delta\n")

    def test_single_layer_with_manual_secret(self):
        config = self.make_config(
            whole_tree=True,
            layer=LayerPlan.SINGLE,
            password_mode=PasswordMode.MANUAL,
            preset_secret=TEST_SECRET,
            include_patterns=["*.txt"],
        )
        ConversionPipeline(config).run()

        html_path = self.output / "docs.html"
        members = read_members(embedded_payload(html_path), TEST_SECRET)
        self.assertEqual(sorted(members), ["docs/a.txt", "docs/sub/c.txt"])
        self.assertIn(TEST_SECRET, html_path.read_text(encoding="utf-8"))

    def test_layer_none_is_rejected_before_any_output(self):
        config = self.make_config(whole_tree=True, layer=LayerPlan.NONE)

        with self.assertRaises(ConfigurationError):
            ConversionPipeline(config).run()
        self.assertFalse(self.output.exists())

    def test_no_eligible_files_raises(self):
        config = self.make_config(whole_tree=True, include_patterns=["*.pdf"])
        with self.assertRaises(NoEligibleFilesError):
            ConversionPipeline(config).run()


class TestPerFileMode(ConversionTestCase):
    """Individual mode: one page per file."""

    def test_every_file_gets_its_own_page(self):
        config = self.make_config(layer=LayerPlan.SINGLE)
        summary = ConversionPipeline(config).run()

        self.assertEqual(summary.units_processed, 4)
        self.assertEqual(summary.units_failed, 0)
        page = self.output / "docs" / "sub" / "c.txt.html"
        self.assertIn(page, summary.outputs)
        self.assertEqual(read_members(embedded_payload(page)), {"c.txt": b"charlie"})

    def test_layer_none_embeds_raw_bytes(self):
        config = self.make_config(layer=LayerPlan.NONE)
        ConversionPipeline(config).run()

        page = self.output / "docs" / "a.txt.html"
        self.assertEqual(embedded_payload(page), b"alpha")

    def test_single_file_root(self):
        config = self.make_config(
            input_path=str(self.root / "b.log"),
            password_mode=PasswordMode.TIMESTAMP,
            display_password=False,
        )
        summary = ConversionPipeline(config).run()

        page = self.output / "b.log.html"
        self.assertEqual(summary.outputs, [page])
        secret = (self.output / "b.log.html.key").read_bytes().decode("utf-8")
        self.assertEqual(len(secret), 14)
        outer = read_members(embedded_payload(page), secret)
        self.assertEqual(read_members(outer["b.log_outer.zip"], secret), {"b.log": b"bravo log line\n"})

    def test_failed_file_does_not_stop_the_batch(self):
        def flaky_renderer(result, base_name, output_dir, secret, display):
            if base_name == "b.log":
                raise ArchiveEncodingError("disk full")
            return render_html_file(result, base_name, output_dir, secret, display)

        config = self.make_config()
        summary = ConversionPipeline(config, renderer=flaky_renderer).run()

        self.assertEqual(summary.units_processed, 3)
        self.assertEqual(summary.units_failed, 1)
        self.assertEqual(summary.failures[0][1], "disk full")
        self.assertFalse((self.output / "docs" / "b.log.html").exists())
        self.assertTrue((self.output / "docs" / "a.txt.html").exists())

    def test_parallel_workers_produce_the_same_pages(self):
        config = self.make_config(workers=4, layer=LayerPlan.SINGLE)
        with patch("archive_ops.conversion.bounded_worker_count", return_value=4):
            summary = ConversionPipeline(config).run()

        self.assertEqual(summary.units_processed, 4)
        self.assertEqual(
            summary.outputs,
            [
                self.output / "docs" / "a.txt.html",
                self.output / "docs" / "b.log.html",
                self.output / "docs" / "sub" / "c.txt.html",
                self.output / "docs" / "sub" / "deeper" / "d.md.html",
            ],
        )

    def test_one_secret_for_the_whole_batch(self):
        config = self.make_config(
            password_mode=PasswordMode.RANDOM, display_password=False
        )
        ConversionPipeline(config).run()

        first = (self.output / "docs" / "a.txt.html.key").read_bytes()
        second = (self.output / "docs" / "sub" / "c.txt.html.key").read_bytes()
        self.assertEqual(first, second)

    def test_unit_count_is_given_to_the_reporter(self):
        reporter = RecordingReporter()
        ConversionPipeline(self.make_config(), reporter=reporter).run()

        self.assertEqual(reporter.totals, [4])
        converted = [p for p in reporter.progress if p[2] == "Converting files"]
        self.assertEqual([p[0] for p in converted], [1, 2, 3, 4])

    def test_empty_selection_produces_nothing(self):
        config = self.make_config(include_patterns=["*.pdf"])
        summary = ConversionPipeline(config).run()

        self.assertEqual(summary.units_processed, 0)
        self.assertEqual(summary.outputs, [])
        self.assertFalse(self.output.exists())

    def test_manual_mode_without_secret_raises(self):
        config = self.make_config(password_mode=PasswordMode.MANUAL)
        with self.assertRaises(PasswordError):
            ConversionPipeline(config).run()

    def test_missing_input_raises(self):
        config = self.make_config(input_path=str(Path(self.temp_dir) / "missing"))
        with self.assertRaises(InputNotFoundError):
            ConversionPipeline(config).run()

    def test_convert_helper(self):
        summary = convert(self.make_config(include_patterns=["*.md"]))

        self.assertEqual(
            summary.outputs, [self.output / "docs" / "sub" / "deeper" / "d.md.html"]
        )
        self.assertGreater(summary.total_size, 0)


class TestBoundedWorkerCount(TempDirTestCase):
    """Test the memory-based worker cap."""

    def test_single_worker_is_kept(self):
        self.assertEqual(bounded_worker_count(1, 10 ** 12), 1)

    def test_capped_by_available_memory(self):
        with patch("archive_ops.conversion.psutil.virtual_memory") as vm:
            vm.return_value.available = 3000
            self.assertEqual(bounded_worker_count(8, 500), 2)

    def test_never_below_one(self):
        with patch("archive_ops.conversion.psutil.virtual_memory") as vm:
            vm.return_value.available = 10
            self.assertEqual(bounded_worker_count(4, 10 ** 9), 1)


if __name__ == "__main__":
    unittest.main()
