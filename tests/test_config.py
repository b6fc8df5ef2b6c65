# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Tests for indexer configuration loading."""

from repo_context.codebase.ignore_patterns import DEFAULT_SKIP_DIRS
from repo_context.config import IndexerConfig


class TestIndexerConfig:
    def test_defaults(self):
        config = IndexerConfig()
        assert config.context_dir == ".context"
        assert config.index_file == "context.json"
        assert config.meta_file == "meta.json"
        assert config.strict_syntax is True
        assert config.include_hidden is False
        assert config.parallel_workers == 0

    def test_effective_skip_dirs_include_context_dir(self):
        config = IndexerConfig(extra_skip_dirs=["generated"])
        assert config.effective_skip_dirs == DEFAULT_SKIP_DIRS | {"generated", ".context"}


class TestLoad:
    """Reading .context/config.yaml."""

    def test_missing_file_gives_defaults(self, tmp_path):
        assert IndexerConfig.load(tmp_path) == IndexerConfig()

    def test_values_from_yaml(self, make_repo):
        root = make_repo(
            {
                ".context/config.yaml": (
                    "extra_skip_dirs:\n"
                    "  - generated\n"
                    "  - fixtures\n"
                    "strict_syntax: false\n"
                    "parallel_workers: 2\n"
                    "max_file_size: null\n"
                )
            }
        )

        config = IndexerConfig.load(root)

        assert config.extra_skip_dirs == ["generated", "fixtures"]
        assert config.strict_syntax is False
        assert config.parallel_workers == 2
        assert config.max_file_size is None

    def test_empty_file_gives_defaults(self, make_repo):
        root = make_repo({".context/config.yaml": ""})
        assert IndexerConfig.load(root) == IndexerConfig()

    def test_invalid_yaml_falls_back_to_defaults(self, make_repo):
        root = make_repo({".context/config.yaml": "extra_skip_dirs: [unclosed\n"})
        assert IndexerConfig.load(root) == IndexerConfig()

    def test_non_mapping_falls_back_to_defaults(self, make_repo):
        root = make_repo({".context/config.yaml": "- just\n- a list\n"})
        assert IndexerConfig.load(root) == IndexerConfig()

    def test_invalid_values_fall_back_to_defaults(self, make_repo):
        root = make_repo({".context/config.yaml": "parallel_workers: -3\n"})
        assert IndexerConfig.load(root) == IndexerConfig()
