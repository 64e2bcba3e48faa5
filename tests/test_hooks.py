"""
Tests for lifecycle hook parsing and execution.
"""

import sys

import pytest

from gmbt.errors import ConfigError, HookFailure
from gmbt.hooks import HookEvent, HookMode, HooksManager, HookType


def python(code: str) -> str:
    return f'"{sys.executable}" -c "{code}"'


class TestParse:

    def test_lists_and_single_commands(self):
        manager = HooksManager({
            "common": {"pre": {"assets_merge": ["one", "two"]}},
            "full_test": {"post": {"subtitles_update": "three"}},
        })

        assert manager.get_hooks(HookMode.COMMON, HookType.PRE, HookEvent.ASSETS_MERGE) == ["one", "two"]
        assert manager.get_hooks(HookMode.FULL_TEST, HookType.POST, HookEvent.SUBTITLES_UPDATE) == ["three"]
        assert manager.get_hooks(HookMode.TEST, HookType.PRE, HookEvent.ASSETS_MERGE) == []

    def test_empty_sections(self):
        manager = HooksManager({"test": None, "common": {"pre": None}})
        assert manager.get_hooks(HookMode.TEST, HookType.PRE, HookEvent.ASSETS_MERGE) == []

    @pytest.mark.parametrize("hooks", [
        {"nightly": {"pre": {"assets_merge": ["x"]}}},
        {"common": {"during": {"assets_merge": ["x"]}}},
        {"common": {"pre": {"compile": ["x"]}}},
        {"common": ["x"]},
    ])
    def test_unknown_keys_are_config_errors(self, hooks):
        with pytest.raises(ConfigError) as exc_info:
            HooksManager(hooks)
        assert exc_info.value.key == "Config.Error.Invalid"


class TestRunHooks:

    def test_runs_in_order_from_cwd(self, tmp_path):
        log = tmp_path / "log.txt"
        manager = HooksManager({
            "test": {"pre": {"assets_merge": [
                python("open('log.txt', 'a').write('first\\n')"),
                python("open('log.txt', 'a').write('second\\n')"),
            ]}},
        }, cwd=tmp_path)

        manager.run_hooks(HookMode.TEST, HookType.PRE, HookEvent.ASSETS_MERGE)

        assert log.read_text().splitlines() == ["first", "second"]

    def test_failure_stops_remaining_commands(self, tmp_path):
        failing = python("import sys; sys.exit(3)")
        manager = HooksManager({
            "common": {"post": {"assets_merge": [
                failing,
                python("open('ran.txt', 'w').write('x')"),
            ]}},
        }, cwd=tmp_path)

        with pytest.raises(HookFailure) as exc_info:
            manager.run_hooks(HookMode.COMMON, HookType.POST, HookEvent.ASSETS_MERGE)

        assert exc_info.value.status == 3
        assert exc_info.value.command == failing
        assert not (tmp_path / "ran.txt").exists()

    def test_nothing_registered_is_a_no_op(self, tmp_path):
        HooksManager({}, cwd=tmp_path).run_hooks(HookMode.QUICK_TEST, HookType.PRE, HookEvent.SUBTITLES_UPDATE)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
