"""
Tests for copying mod assets into the game's work directory.
"""

import pytest

from gmbt.merge import AssetsMerger, MergeOptions


@pytest.fixture
def mod(tmp_path):
    mod = tmp_path / "mod"
    for relative in ["Scripts/Content/Story/a.d", "Worlds/MyWorld.zen", "Sound/SFX/hit.wav", "readme.txt"]:
        path = mod / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(relative)
    return mod


@pytest.fixture
def work_data(tmp_path):
    work = tmp_path / "Gothic" / "_Work" / "DATA"
    (work / "SCRIPTS" / "Content").mkdir(parents=True)
    return work


class TestMergeOptions:

    def test_merges_scripts(self):
        assert MergeOptions.ALL.merges_scripts
        assert MergeOptions.SCRIPTS.merges_scripts
        assert not MergeOptions.WORLDS.merges_scripts
        assert not MergeOptions.NONE.merges_scripts


class TestAssetsMerger:

    def test_scripts_only_into_existing_case(self, mod, work_data):
        written = AssetsMerger([mod], work_data).merge(MergeOptions.SCRIPTS)

        target = work_data / "SCRIPTS" / "Content" / "Story" / "a.d"
        assert written == [target]
        assert target.read_text() == "Scripts/Content/Story/a.d"
        assert not (work_data / "Worlds").exists()

    def test_all(self, mod, work_data):
        written = AssetsMerger([mod], work_data).merge(MergeOptions.ALL)
        assert sorted(p.name for p in written) == ["MyWorld.zen", "a.d", "hit.wav", "readme.txt"]

    def test_later_directories_overwrite(self, mod, tmp_path, work_data):
        patch = tmp_path / "patch" / "Worlds"
        patch.mkdir(parents=True)
        (patch / "MyWorld.zen").write_text("patched")

        AssetsMerger([mod, tmp_path / "patch"], work_data).merge(MergeOptions.WORLDS)

        assert (work_data / "Worlds" / "MyWorld.zen").read_text() == "patched"

    def test_missing_asset_directory_is_skipped(self, tmp_path, work_data):
        assert AssetsMerger([tmp_path / "absent"], work_data).merge(MergeOptions.ALL) == []

    def test_none_copies_nothing(self, mod, work_data):
        assert AssetsMerger([mod], work_data).merge(MergeOptions.NONE) == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
