"""Tests for finding and layering config files."""

import pytest

from treefilter.core.config import ConfigError, ConfigLoader


@pytest.fixture
def layout(tmp_path, monkeypatch):
    """A home directory and a git checkout with a nested working directory.

    Returns a namespace-like dict with ``user``, ``project`` and ``local``
    config paths; none of the files exist until a test writes them.
    """
    home = tmp_path / "home"
    project = tmp_path / "project"
    workdir = project / "tests" / "unit"
    (home / ".config" / "treefilter").mkdir(parents=True)
    (project / ".git").mkdir(parents=True)
    workdir.mkdir(parents=True)

    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("TREEFILTER_GIT_ROOT", raising=False)
    monkeypatch.chdir(workdir)

    return {
        "workdir": workdir,
        "user": home / ".config" / "treefilter" / "config.toml",
        "project": project / "treefilter.toml",
        "local": workdir / "treefilter.toml",
    }


def write_filters(path, **filters):
    lines = ["[filters]"] + [f'{name} = "{source}"' for name, source in filters.items()]
    path.write_text("\n".join(lines) + "\n")


class TestDiscoverConfigs:
    """Which files apply, and in which order."""

    def test_nothing_written(self, layout):
        assert ConfigLoader().discover_configs(layout["workdir"]) == []

    def test_lowest_precedence_first(self, layout):
        for key in ("local", "user", "project"):
            layout[key].write_text("")

        found = ConfigLoader().discover_configs(layout["workdir"])

        assert found == [layout["user"], layout["project"], layout["local"]]

    def test_git_root_found_from_nested_directory(self, layout):
        layout["project"].write_text("")

        assert ConfigLoader().discover_configs() == [layout["project"]]

    def test_git_root_listed_once_when_it_is_the_start(self, layout):
        layout["project"].write_text("")

        found = ConfigLoader().discover_configs(layout["project"].parent)

        assert found == [layout["project"]]

    def test_env_override_moves_project_file(self, layout, tmp_path, monkeypatch):
        elsewhere = tmp_path / "elsewhere"
        elsewhere.mkdir()
        (elsewhere / "treefilter.toml").write_text("")
        layout["project"].write_text("")
        monkeypatch.setenv("TREEFILTER_GIT_ROOT", str(elsewhere))

        found = ConfigLoader().discover_configs(layout["workdir"])

        assert found == [elsewhere / "treefilter.toml"]

    def test_directory_named_like_config_is_ignored(self, layout):
        layout["local"].mkdir()

        assert ConfigLoader().discover_configs(layout["workdir"]) == []


class TestNamedFilterLayering:
    """Named filters merge by name across user, project and local files."""

    def test_each_level_contributes(self, layout):
        write_filters(layout["user"], mine="/Scratch/**")
        write_filters(layout["project"], fast="/**[Category=Fast]")
        write_filters(layout["local"], unit="/MyModule/*Tests/*")

        config = ConfigLoader().load_merged(layout["workdir"])

        assert config.filters == {
            "mine": "/Scratch/**",
            "fast": "/**[Category=Fast]",
            "unit": "/MyModule/*Tests/*",
        }

    def test_higher_level_replaces_same_name(self, layout):
        write_filters(layout["user"], fast="/**[Category=Fast]", all="/**")
        write_filters(layout["project"], fast="/MyModule/**[Category=Fast]")
        write_filters(layout["local"], fast="/MyModule/MathTests/*[Category=Fast]")

        config = ConfigLoader().load_merged(layout["workdir"])

        assert config.filters["fast"] == "/MyModule/MathTests/*[Category=Fast]"
        assert config.filters["all"] == "/**"

    def test_resolves_at_name_after_merge(self, layout):
        write_filters(layout["user"], slow="/**[Category=Slow]")
        write_filters(layout["local"], fast="/**[Category=Fast]")

        config = ConfigLoader().load_merged(layout["workdir"])

        assert config.resolve_filter("@slow") == "/**[Category=Slow]"
        assert config.resolve_filter("@fast") == "/**[Category=Fast]"
        with pytest.raises(ConfigError, match="known filters: fast, slow"):
            config.resolve_filter("@medium")

    def test_other_sections_layer_per_key(self, layout):
        layout["user"].write_text('[output]\ncolor = false\nformat = "json"\n')
        layout["local"].write_text('[output]\nformat = "count"\n')

        config = ConfigLoader().load_merged(layout["workdir"])

        assert (config.output.color, config.output.format) == (False, "count")


class TestLayeringErrors:
    """Errors name the file that caused them."""

    def test_invalid_filter_names_its_file(self, layout):
        write_filters(layout["user"], broken="/**/Path")
        write_filters(layout["local"], fine="/**")

        with pytest.raises(ConfigError) as exc:
            ConfigLoader().load_merged(layout["workdir"])

        assert exc.value.path == layout["user"]
        assert "Invalid filter 'broken'" in str(exc.value)
        assert "'**' is only allowed as the last segment" in str(exc.value)

    def test_overridden_invalid_filter_still_reported(self, layout):
        write_filters(layout["project"], fast="/A//B")
        write_filters(layout["local"], fast="/**[Category=Fast]")

        with pytest.raises(ConfigError) as exc:
            ConfigLoader().load_merged(layout["workdir"])

        assert exc.value.path == layout["project"]

    def test_bad_toml_reports_file_and_line(self, layout):
        layout["project"].write_text('[filters]\nfast = "/**\n')

        with pytest.raises(ConfigError) as exc:
            ConfigLoader().load_merged(layout["workdir"])

        assert exc.value.path == layout["project"]
        assert exc.value.line == 2
        assert f"{layout['project']}, line 2" in str(exc.value)

    def test_section_must_be_a_table(self, layout):
        layout["local"].write_text('filters = "/**"\n')

        with pytest.raises(ConfigError, match=r"\[filters\] must be a table"):
            ConfigLoader().load_merged(layout["workdir"])
