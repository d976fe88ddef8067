"""
Tests for configuration loading, environment overrides and the project model.
"""

import tempfile
from pathlib import Path

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from ici.core.config import ConfigError, ICIConfig, ModuleConfig, ProjectConfig, load_config
from ici.core.project import ProjectModel
from tests.support.classfile_builder import simple_class, write_classfile


def test_defaults_come_from_packaged_yaml():
    config = ICIConfig()

    assert config.project.cache_dir == ".ici"
    assert config.project.index_version == "1.0"
    assert config.indexing.stale_group_size == 1000
    assert config.indexing.backlog_batch_size == 500
    assert config.indexing.package_blacklist == ["sun/", "sunw/", "com/sun/"]
    assert "$$anonfun$" in config.indexing.synthetic_markers
    assert config.watch.refresh_on_start is True


def test_cache_directories_are_versioned():
    project = ProjectConfig(cache_dir="/tmp/cache", index_version="2.3")

    assert project.index_dir == Path("/tmp/cache/index-2.3")
    assert project.sql_dir == Path("/tmp/cache/sql-2.3")


def test_default_lists_are_not_shared():
    first = ICIConfig()
    first.indexing.package_blacklist.append("org/")

    assert ICIConfig().indexing.package_blacklist == ["sun/", "sunw/", "com/sun/"]


def test_yaml_file_with_modules():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "ici.yaml"
        path.write_text(
            """
project:
  cache_dir: /work/.ici
  modules:
    - name: core
      target_dirs: [core/target/classes]
      compile_jars: [lib/a.jar]
indexing:
  max_workers: 2
""",
            encoding="utf-8",
        )

        config = ICIConfig.from_file(path)

        assert config.project.cache_dir == "/work/.ici"
        assert config.project.modules == [
            ModuleConfig(name="core", target_dirs=["core/target/classes"], compile_jars=["lib/a.jar"])
        ]
        assert config.indexing.max_workers == 2
        assert config.indexing.backlog_batch_size == 500


def test_invalid_files_raise():
    with tempfile.TemporaryDirectory() as tmpdir:
        bad_yaml = Path(tmpdir) / "bad.yaml"
        bad_yaml.write_text("project: [unclosed", encoding="utf-8")
        unknown_key = Path(tmpdir) / "unknown.json"
        unknown_key.write_text('{"indexing": {"turbo": true}}', encoding="utf-8")

        with pytest.raises(ConfigError):
            ICIConfig.from_file(bad_yaml)
        with pytest.raises(ConfigError):
            ICIConfig.from_file(unknown_key)
        with pytest.raises(FileNotFoundError):
            ICIConfig.from_file(Path(tmpdir) / "missing.yaml")
        with pytest.raises(ValueError):
            ICIConfig().save(Path(tmpdir) / "ici.toml")


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("ICI_PROJECT_CACHE_DIR", "/env/cache")
    monkeypatch.setenv("ICI_INDEXING_BACKLOG_BATCH_SIZE", "25")
    monkeypatch.setenv("ICI_WATCH_REFRESH_ON_START", "no")
    monkeypatch.setenv("ICI_LOGGING_LEVEL", "DEBUG")

    config = load_config()

    assert config.project.cache_dir == "/env/cache"
    assert config.indexing.backlog_batch_size == 25
    assert config.watch.refresh_on_start is False
    assert config.logging.level == "DEBUG"
    assert load_config(apply_env=False).indexing.backlog_batch_size == 500


@given(
    workers=st.integers(min_value=1, max_value=32),
    batch=st.integers(min_value=1, max_value=5000),
    version=st.from_regex(r"[0-9]\.[0-9]", fullmatch=True),
    suffix=st.sampled_from([".yaml", ".json"]),
)
@settings(max_examples=25, deadline=None)
def test_saved_config_loads_back(workers: int, batch: int, version: str, suffix: str):
    config = ICIConfig()
    config.indexing.max_workers = workers
    config.indexing.backlog_batch_size = batch
    config.project.index_version = version
    config.project.modules = [ModuleConfig(name="m", target_dirs=["out"])]

    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / f"ici{suffix}"
        config.save(path)
        loaded = ICIConfig.from_file(path)

    assert loaded.to_dict() == config.to_dict()


def test_project_model_universe():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        main = root / "core" / "target" / "classes"
        tests = root / "core" / "target" / "test-classes"
        a = write_classfile(main, simple_class("core/A"))
        b = write_classfile(tests, simple_class("core/ATest"))
        (main / "core" / "notes.txt").write_text("ignored")
        jar = root / "lib" / "a.jar"
        rt = root / "jdk" / "rt.jar"

        project = ProjectModel(
            ProjectConfig(
                modules=[
                    ModuleConfig(
                        name="core",
                        target_dirs=[str(main)],
                        test_target_dirs=[str(tests)],
                        compile_jars=[str(jar)],
                    )
                ],
                java_libs=[str(rt)],
            )
        )

        assert project.list_universe() == {
            a.resolve(), b.resolve(), jar.resolve(), rt.resolve()
        }
        assert project.archive_uris() == {jar.resolve().as_uri(), rt.resolve().as_uri()}
