"""
Tests for the VDFS catalog reader and the archive toggler.
"""

import os
from pathlib import Path

import pytest

from gmbt.errors import ArchiveFormatError, ArchiveRestoreError
from gmbt.vdfs import (
    ArchiveJournal,
    ArchiveToggler,
    DisabledArchive,
    contains_anims,
    read_entries,
)
from gmbt.vdfs.reader import ArchiveEntry

from conftest import write_vdf


class TestReader:
    """Catalog parsing."""

    def test_reads_entries_in_order(self, tmp_path):
        archive = write_vdf(tmp_path / "Anims.vdf", [("_WORK", True), ("ANIMS", True), ("HUMANS.MDS", False)])

        entries = read_entries(archive)

        assert [e.name for e in entries] == ["_WORK", "ANIMS", "HUMANS.MDS"]
        assert [e.is_directory for e in entries] == [True, True, False]
        assert entries[-1].is_last
        assert not entries[0].is_last

    def test_gothic2_signature(self, tmp_path):
        archive = write_vdf(tmp_path / "a.vdf", [("X.ZEN", False)])
        data = bytearray(archive.read_bytes())
        data[256:272] = b"PSVDSC_V2.00\n\r\n\r"
        archive.write_bytes(bytes(data))

        assert [e.name for e in read_entries(archive)] == ["X.ZEN"]

    def test_bad_signature(self, tmp_path):
        bogus = tmp_path / "bogus.vdf"
        bogus.write_bytes(b"\x00" * 400)

        with pytest.raises(ArchiveFormatError) as exc_info:
            read_entries(bogus)
        assert exc_info.value.key == "Vdfs.Error.BadSignature"

    def test_truncated_header(self, tmp_path):
        short = tmp_path / "short.vdf"
        short.write_bytes(b"PSVDSC")

        with pytest.raises(ArchiveFormatError) as exc_info:
            read_entries(short)
        assert exc_info.value.key == "Vdfs.Error.Truncated"

    def test_truncated_catalog(self, tmp_path):
        archive = write_vdf(tmp_path / "a.vdf", [("A", False), ("B", False)])
        archive.write_bytes(archive.read_bytes()[:-40])

        with pytest.raises(ArchiveFormatError):
            read_entries(archive)


class TestContainsAnims:

    def test_exact_name_only(self):
        assert contains_anims([ArchiveEntry("anims", True, 0, 0)])
        assert not contains_anims([ArchiveEntry("ANIMS_COMPILED", True, 0, 0)])
        assert not contains_anims([])


@pytest.fixture
def data_dir(tmp_path):
    data = tmp_path / "Data"
    write_vdf(data / "Anims.vdf", [("_WORK", True), ("anims", True)])
    write_vdf(data / "Meshes.vdf", [("_WORK", True), ("MESHES", True)])
    write_vdf(data / "Textures.vdf", [("_WORK", True), ("TEXTURES", True)])
    (data / "readme.txt").write_text("not an archive")
    return data


class TestArchiveToggler:
    """Disabling and re-enabling animation archives."""

    def test_disables_only_archives_with_anims(self, data_dir):
        toggler = ArchiveToggler(data_dir)
        disabled = []

        toggler.disable(disabled)

        assert disabled == [DisabledArchive(data_dir / "Anims.vdf", data_dir / "Anims.disabled")]
        assert not (data_dir / "Anims.vdf").exists()
        assert (data_dir / "Anims.disabled").exists()
        assert (data_dir / "Meshes.vdf").exists()
        assert (data_dir / "Textures.vdf").exists()

    def test_enable_restores_and_drains(self, data_dir):
        toggler = ArchiveToggler(data_dir)
        disabled = []
        toggler.disable(disabled)

        toggler.enable(disabled)

        assert disabled == []
        assert (data_dir / "Anims.vdf").exists()
        assert not (data_dir / "Anims.disabled").exists()

    def test_journal_tracks_disabled_archives(self, data_dir):
        toggler = ArchiveToggler(data_dir)
        disabled = []

        toggler.disable(disabled)
        assert toggler.journal.load() == disabled

        toggler.enable(list(disabled))
        assert toggler.journal.load() == []
        assert not toggler.journal.path.exists()

    def test_partial_failure_drains_list_and_keeps_journal(self, data_dir):
        write_vdf(data_dir / "Anims2.vdf", [("ANIMS", True)])
        toggler = ArchiveToggler(data_dir)
        disabled = []
        toggler.disable(disabled)
        assert len(disabled) == 2

        # The first disabled file vanished behind our back
        vanished = disabled[0]
        vanished.disabled_path.unlink()

        with pytest.raises(ArchiveRestoreError) as exc_info:
            toggler.enable(disabled)

        assert disabled == []
        assert exc_info.value.paths == [vanished.disabled_path]
        assert toggler.journal.load() == [vanished]
        assert (data_dir / "Anims2.vdf").exists()

    def test_already_enabled_archive_counts_as_restored(self, data_dir):
        toggler = ArchiveToggler(data_dir)
        disabled = []
        toggler.disable(disabled)
        os.rename(data_dir / "Anims.disabled", data_dir / "Anims.vdf")

        toggler.enable(disabled)

        assert toggler.journal.load() == []

    def test_restore_journal_after_crash(self, data_dir):
        ArchiveToggler(data_dir).disable([])

        # A fresh toggler knows nothing in memory, only the journal
        restored = ArchiveToggler(data_dir).restore_journal()

        assert [r.original_path.name for r in restored] == ["Anims.vdf"]
        assert (data_dir / "Anims.vdf").exists()

    def test_read_failure_propagates(self, data_dir):
        (data_dir / "Broken.vdf").write_bytes(b"garbage")

        with pytest.raises(ArchiveFormatError):
            ArchiveToggler(data_dir).disable([])

    def test_custom_reader(self, tmp_path):
        data = tmp_path / "Data"
        data.mkdir()
        for name in ["a.vdf", "b.VDF", "c.vdf"]:
            (data / name).write_bytes(b"")

        def reader(path: Path):
            return [ArchiveEntry("ANIMS", True, 0, 0)] if path.name == "b.VDF" else []

        disabled = []
        ArchiveToggler(data, reader=reader).disable(disabled)

        assert [d.original_path.name for d in disabled] == ["b.VDF"]
        assert (data / "b.disabled").exists()


class TestArchiveJournal:

    def test_roundtrip(self, tmp_path):
        journal = ArchiveJournal(tmp_path / "journal.json")
        record = DisabledArchive(tmp_path / "a.vdf", tmp_path / "a.disabled")

        journal.add(record)
        journal.add(record)

        assert journal.load() == [record]
        journal.remove(record)
        assert journal.load() == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
