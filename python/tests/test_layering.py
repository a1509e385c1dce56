"""
Tests for none/single/double layer construction and download naming.
"""

import unittest

from archive_ops import (
    ConfigurationError,
    EncryptionSpec,
    FileEntry,
    LayerPlan,
    LayeringOrchestrator,
    ZipArchiveEncoder,
    build_layered_archive,
)
from .test_utils import (
    SAMPLE_TREE,
    TEST_SECRET,
    BaseTestCase,
    TempDirTestCase,
    member_names,
    open_archive,
    read_members,
)

CONTENT = b"hello, layered world\n" * 10


class TestBytesPayload(BaseTestCase):
    """Layering a single file's bytes named doc.txt."""

    def setUp(self):
        super().setUp()
        self.orchestrator = LayeringOrchestrator(ZipArchiveEncoder())
        self.encryption = EncryptionSpec(key_length=256, secret=TEST_SECRET)

    def test_none_passes_bytes_through(self):
        result = self.orchestrator.build_layered_archive(
            CONTENT, LayerPlan.NONE, "doc.txt", self.encryption
        )

        self.assertEqual(result.data, CONTENT)
        self.assertEqual(result.download_name, "doc.txt")
        self.assertEqual(result.total_size, len(CONTENT))
        self.assertFalse(result.encrypted)

    def test_single_layer(self):
        result = self.orchestrator.build_layered_archive(
            CONTENT, LayerPlan.SINGLE, "doc.txt", self.encryption
        )

        self.assertEqual(result.download_name, "doc.txt.zip")
        self.assertEqual(read_members(result.data, TEST_SECRET), {"doc.txt": CONTENT})
        self.assertTrue(result.encrypted)

    def test_double_layer_unlocks_with_one_secret(self):
        result = self.orchestrator.build_layered_archive(
            CONTENT, LayerPlan.DOUBLE, "doc.txt", self.encryption
        )

        self.assertEqual(result.download_name, "doc.txt_outer.zip")
        outer = read_members(result.data, TEST_SECRET)
        self.assertEqual(list(outer), ["doc.txt_outer.zip"])

        inner = read_members(outer["doc.txt_outer.zip"], TEST_SECRET)
        self.assertEqual(inner, {"doc.txt": CONTENT})

    def test_double_layer_without_secret(self):
        result = self.orchestrator.build_layered_archive(
            CONTENT, LayerPlan.DOUBLE, "doc.txt", None
        )

        self.assertFalse(result.encrypted)
        outer = read_members(result.data)
        self.assertEqual(read_members(outer["doc.txt_outer.zip"]), {"doc.txt": CONTENT})

    def test_plan_may_be_given_as_string(self):
        result = self.orchestrator.build_layered_archive(CONTENT, "single", "doc.txt")
        self.assertIs(result.plan, LayerPlan.SINGLE)

    def test_existing_archive_payload_single(self):
        archive = ZipArchiveEncoder().encode_one("doc.txt", CONTENT)
        result = self.orchestrator.build_layered_archive(
            archive, LayerPlan.SINGLE, "doc.txt", None, payload_is_archive=True
        )

        self.assertEqual(member_names(result.data), ["doc.txt.zip"])
        self.assertEqual(read_members(result.data)["doc.txt.zip"], archive)

    def test_existing_archive_payload_single_is_wrapped_and_encrypted(self):
        archive = ZipArchiveEncoder().encode_one("doc.txt", CONTENT)
        result = self.orchestrator.build_layered_archive(
            archive, LayerPlan.SINGLE, "doc.txt", self.encryption, payload_is_archive=True
        )

        self.assertTrue(result.encrypted)
        self.assertEqual(member_names(result.data), ["doc.txt.zip"])
        with open_archive(result.data) as zf:
            self.assertTrue(zf.getinfo("doc.txt.zip").flag_bits & 0x1)
        self.assertEqual(read_members(result.data, TEST_SECRET)["doc.txt.zip"], archive)

    def test_existing_archive_payload_double_uses_it_as_inner(self):
        archive = ZipArchiveEncoder().encode_one("doc.txt", CONTENT)
        result = self.orchestrator.build_layered_archive(
            archive, LayerPlan.DOUBLE, "doc.txt", None, payload_is_archive=True
        )

        self.assertEqual(read_members(result.data), {"doc.txt_outer.zip": archive})

    def test_module_level_helper(self):
        result = build_layered_archive(
            CONTENT, LayerPlan.SINGLE, "doc.txt", compression="stored"
        )
        self.assertEqual(read_members(result.data), {"doc.txt": CONTENT})


class TestEntryListPayload(TempDirTestCase):
    """Layering a whole tree."""

    def setUp(self):
        super().setUp()
        self.root = self.make_tree(SAMPLE_TREE)
        self.entries = [
            FileEntry(self.root / "a.txt", 5, "docs/a.txt"),
            FileEntry(self.root / "sub" / "c.txt", 7, "docs/sub/c.txt"),
        ]
        self.encryption = EncryptionSpec(key_length=128, secret=TEST_SECRET)

    def test_none_with_entry_list_is_rejected(self):
        with self.assertRaises(ConfigurationError):
            LayeringOrchestrator().build_layered_archive(
                self.entries, LayerPlan.NONE, "docs", self.encryption
            )

    def test_single_layer_holds_all_entries(self):
        result = LayeringOrchestrator().build_layered_archive(
            self.entries, LayerPlan.SINGLE, "docs", self.encryption
        )

        self.assertEqual(result.download_name, "docs.zip")
        self.assertEqual(result.total_size, 12)
        self.assertEqual(
            read_members(result.data, TEST_SECRET),
            {"docs/a.txt": b"alpha", "docs/sub/c.txt": b"charlie"},
        )

    def test_double_layer_wraps_tree_archive(self):
        result = LayeringOrchestrator().build_layered_archive(
            self.entries, LayerPlan.DOUBLE, "docs", self.encryption
        )

        self.assertEqual(result.download_name, "docs_outer.zip")
        outer = read_members(result.data, TEST_SECRET)
        inner = read_members(outer["docs_outer.zip"], TEST_SECRET)
        self.assertEqual(sorted(inner), ["docs/a.txt", "docs/sub/c.txt"])


if __name__ == "__main__":
    unittest.main()
