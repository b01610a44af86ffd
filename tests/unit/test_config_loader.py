"""
Unit tests for configuration loading.

Tests file lookup, YAML reading, HOSTKIT_* environment overrides and strict
mode of the hostkit.config.loader module.
"""

import os
import shutil
import tempfile
from pathlib import Path
import pytest
import yaml

from hostkit.config.loader import (
    ConfigurationError,
    environment_overrides,
    load_config,
    locate_config_file,
    merge_overrides,
    read_config_file,
    write_config,
)
from hostkit.models.config import HostKitConfig, ContainmentCheck, LogFormat


class TestLocateConfigFile:
    """Test cases for configuration file lookup."""

    def setup_method(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.base = Path(self.temp_dir)
        self.project = self.base / "project"
        self.nested = self.project / "src" / "pkg"
        self.nested.mkdir(parents=True)

    def teardown_method(self):
        """Clean up test fixtures."""
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def test_found_in_start_directory(self):
        """Test that a file in the start directory is found."""
        (self.nested / "hostkit.yaml").write_text("")

        assert locate_config_file(self.nested, environ={}) == self.nested / "hostkit.yaml"

    def test_found_in_parent_directory(self):
        """Test that the lookup walks up to the project root."""
        (self.project / ".hostkit.yaml").write_text("")

        assert locate_config_file(self.nested, environ={}) == self.project / ".hostkit.yaml"

    def test_nearest_file_wins(self):
        """Test that a deeper file shadows one higher up."""
        (self.project / "hostkit.yaml").write_text("")
        (self.nested / ".hostkit.yaml").write_text("")

        assert locate_config_file(self.nested, environ={}) == self.nested / ".hostkit.yaml"

    def test_plain_name_preferred_over_hidden(self):
        """Test the name order within one directory."""
        (self.nested / "hostkit.yaml").write_text("")
        (self.nested / ".hostkit.yaml").write_text("")

        assert locate_config_file(self.nested, environ={}) == self.nested / "hostkit.yaml"

    def test_directory_with_config_name_is_ignored(self):
        """Test that only regular files count."""
        (self.nested / "hostkit.yaml").mkdir()
        (self.project / "hostkit.yaml").write_text("")

        assert locate_config_file(self.nested, environ={}) == self.project / "hostkit.yaml"

    def test_environment_path_wins(self):
        """Test that HOSTKIT_CONFIG bypasses the directory lookup."""
        (self.nested / "hostkit.yaml").write_text("")
        explicit = self.base / "elsewhere.yaml"
        explicit.write_text("")

        found = locate_config_file(self.nested, environ={'HOSTKIT_CONFIG': str(explicit)})

        assert found == explicit

    def test_environment_path_must_exist(self):
        """Test that a dangling HOSTKIT_CONFIG is an error."""
        with pytest.raises(ConfigurationError) as exc_info:
            locate_config_file(self.nested, environ={'HOSTKIT_CONFIG': str(self.base / "nope.yaml")})
        assert "HOSTKIT_CONFIG" in str(exc_info.value)


class TestReadConfigFile:
    """Test cases for reading raw YAML."""

    def setup_method(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.base = Path(self.temp_dir)

    def teardown_method(self):
        """Clean up test fixtures."""
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def _write(self, content: str) -> Path:
        path = self.base / "hostkit.yaml"
        path.write_text(content, encoding='utf-8')
        return path

    def test_mapping(self):
        """Test that sections are returned as written."""
        path = self._write("query:\n  max_retries: 4\n")

        assert read_config_file(path) == {'query': {'max_retries': 4}}

    def test_empty_and_comment_only(self):
        """Test that empty files read as no sections."""
        assert read_config_file(self._write("")) == {}
        assert read_config_file(self._write("# nothing\n")) == {}

    def test_invalid_yaml(self):
        """Test that syntax errors are reported."""
        with pytest.raises(ConfigurationError) as exc_info:
            read_config_file(self._write("query: [unclosed\n"))
        assert "Invalid YAML" in str(exc_info.value)

    def test_not_a_mapping(self):
        """Test that a top-level list is rejected."""
        with pytest.raises(ConfigurationError) as exc_info:
            read_config_file(self._write("- a\n- b\n"))
        assert "mapping of sections" in str(exc_info.value)


class TestEnvironmentOverrides:
    """Test cases for HOSTKIT_* overrides."""

    def test_known_variables_collected(self):
        """Test that only recognized, non-empty variables are collected."""
        environ = {
            'HOSTKIT_LOG_LEVEL': 'debug',
            'HOSTKIT_LOG_FORMAT': '',
            'HOSTKIT_CONFIG': '/etc/hostkit.yaml',
            'HOSTKIT_UNRELATED': 'x',
            'PATH': '/usr/bin',
        }

        assert environment_overrides(environ) == {'HOSTKIT_LOG_LEVEL': 'debug'}

    def test_merge_keeps_other_file_keys(self):
        """Test that an override replaces one key and leaves its siblings."""
        file_data = {'mirror': {'containment_check': 'prefix', 'follow_symlinks': True}}

        merged = merge_overrides(file_data, {'HOSTKIT_MIRROR_FOLLOW_SYMLINKS': 'false'})

        assert merged == {'mirror': {'containment_check': 'prefix', 'follow_symlinks': 'false'}}
        assert file_data['mirror']['follow_symlinks'] is True

    def test_merge_fills_empty_section(self):
        """Test that a section left empty in YAML still takes overrides."""
        merged = merge_overrides({'query': None}, {'HOSTKIT_QUERY_MAX_RETRIES': ' 3 '})

        assert merged == {'query': {'max_retries': '3'}}


class TestLoadConfig:
    """Test cases for load_config."""

    def setup_method(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.base = Path(self.temp_dir)

    def teardown_method(self):
        """Clean up test fixtures."""
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def _write(self, content: str, name: str = "hostkit.yaml") -> Path:
        path = self.base / name
        path.write_text(content, encoding='utf-8')
        return path

    def test_file_values(self):
        """Test loading a file with no overrides."""
        path = self._write(yaml.dump({
            'query': {'max_retries': 4},
            'mirror': {'follow_symlinks': False}
        }))

        loaded = load_config(path, environ={})

        assert loaded.config.query.max_retries == 4
        assert loaded.config.mirror.follow_symlinks is False
        assert loaded.source == path
        assert loaded.overrides == {}
        assert loaded.warnings == []

    def test_environment_overrides_file(self):
        """Test that HOSTKIT_* values win over the file and are coerced."""
        path = self._write("query:\n  max_retries: 4\nlogging:\n  format: text\n")
        environ = {
            'HOSTKIT_QUERY_MAX_RETRIES': '12',
            'HOSTKIT_MIRROR_FOLLOW_SYMLINKS': 'false',
            'HOSTKIT_LOG_FORMAT': 'JSON',
        }

        loaded = load_config(path, environ=environ)

        assert loaded.config.query.max_retries == 12
        assert loaded.config.mirror.follow_symlinks is False
        assert loaded.config.logging.format == LogFormat.JSON
        assert set(loaded.overrides) == set(environ)

    def test_environment_only(self):
        """Test overrides applied over defaults when no file exists."""
        start = self.base / "empty"
        start.mkdir()

        loaded = load_config(start=start, environ={'HOSTKIT_MIRROR_CONTAINMENT': 'prefix'})

        assert loaded.source is None
        assert loaded.config.mirror.containment_check == ContainmentCheck.PREFIX
        assert len(loaded.warnings) == 1

    def test_defaults(self):
        """Test that defaults apply with no file and no overrides."""
        start = self.base / "empty"
        start.mkdir()

        loaded = load_config(start=start, environ={})

        assert loaded.config == HostKitConfig()
        assert loaded.source is None

    def test_lookup_from_start_directory(self):
        """Test that load_config finds the file above the start directory."""
        self._write("query:\n  max_retries: 2\n", name=".hostkit.yaml")
        start = self.base / "a" / "b"
        start.mkdir(parents=True)

        loaded = load_config(start=start, environ={})

        assert loaded.source == self.base / ".hostkit.yaml"
        assert loaded.config.query.max_retries == 2

    def test_missing_explicit_file(self):
        """Test that an explicit missing file is an error."""
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(self.base / "missing.yaml", environ={})
        assert "not found" in str(exc_info.value)

    def test_invalid_file_value(self):
        """Test that invalid file values name the file."""
        path = self._write("mirror:\n  containment_check: sideways\n")

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(path, environ={})
        assert str(path) in str(exc_info.value)

    def test_invalid_override_is_named(self):
        """Test that a bad override is reported with its variable name."""
        path = self._write("")

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(path, environ={'HOSTKIT_QUERY_MAX_RETRIES': 'many'})
        assert "HOSTKIT_QUERY_MAX_RETRIES" in str(exc_info.value)

    def test_unknown_section(self):
        """Test that unknown sections are rejected."""
        path = self._write("finder:\n  depth: 3\n")

        with pytest.raises(ConfigurationError):
            load_config(path, environ={})

    def test_strict_mode_rejects_warnings(self):
        """Test that warnings become errors in strict mode."""
        path = self._write("logging:\n  level: debug\n")

        assert load_config(path, environ={}).warnings

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(path, environ={}, strict=True)
        assert "strict mode" in str(exc_info.value)

    def test_write_config_reads_back(self):
        """Test that a written configuration loads back unchanged."""
        config = HostKitConfig(query={'max_retries': 3}, logging={'format': 'json'})
        output = self.base / "nested" / "hostkit.yaml"

        write_config(config, output)

        data = yaml.safe_load(output.read_text(encoding='utf-8'))
        assert set(data) == {'query', 'mirror', 'logging'}
        assert load_config(output, environ={}).config == config
