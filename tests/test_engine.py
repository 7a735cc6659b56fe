"""Tests for the default fetch engine."""

import io
import os
import subprocess
import tarfile
import zipfile

import pytest
import requests
from registry_helpers import make_response

from tfrget.exceptions import FetchEngineError
from tfrget.registry.engine import (
    DefaultFetchEngine,
    safe_extract_path,
    source_dir_subdir,
    split_forced_getter,
)

pytestmark = [pytest.mark.unit]


def _zip_bytes(members):
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, content in members.items():
            zf.writestr(name, content)
    return buffer.getvalue()


def _tar_gz_bytes(members):
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tf:
        for name, content in members.items():
            data = content.encode()
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o644
            tf.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


@pytest.fixture
def archive_session(mocker):
    session = mocker.Mock(spec=requests.Session)
    return session


class TestSourceDirSubdir:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("https://example.com/repo.zip", ("https://example.com/repo.zip", "")),
            (
                "https://example.com/repo.zip//modules/vpc",
                ("https://example.com/repo.zip", "modules/vpc"),
            ),
            (
                "git::https://github.com/org/repo.git//modules/vpc?ref=v1.2.0",
                ("git::https://github.com/org/repo.git?ref=v1.2.0", "modules/vpc"),
            ),
            ("./local//sub", ("./local", "sub")),
            (
                "https://example.com/x?redirect=http://a//b",
                ("https://example.com/x?redirect=http://a//b", ""),
            ),
        ],
    )
    def test_split(self, raw, expected):
        assert source_dir_subdir(raw) == expected

    def test_engine_delegates(self):
        engine = DefaultFetchEngine()
        assert engine.split_source_and_subdir("https://h/a.zip//b") == (
            "https://h/a.zip",
            "b",
        )


class TestSplitForcedGetter:
    def test_forced_prefix(self):
        assert split_forced_getter("git::https://github.com/org/repo") == (
            "git",
            "https://github.com/org/repo",
        )

    def test_no_prefix(self):
        assert split_forced_getter("https://example.com/a.zip") == (
            "",
            "https://example.com/a.zip",
        )

    def test_double_colon_after_scheme_is_not_a_getter(self):
        assert split_forced_getter("https://example.com/a::b") == (
            "",
            "https://example.com/a::b",
        )


class TestSafeExtractPath:
    def test_inside(self, tmp_path):
        assert safe_extract_path(str(tmp_path), "a/b.tf") == os.path.join(
            os.path.realpath(tmp_path), "a", "b.tf"
        )

    def test_escape(self, tmp_path):
        with pytest.raises(ValueError):
            safe_extract_path(str(tmp_path), "../outside.tf")


class TestResolveGlobSubdir:
    def test_single_match(self, tmp_path):
        (tmp_path / "repo-1a2b" / "modules").mkdir(parents=True)
        engine = DefaultFetchEngine()

        assert engine.resolve_glob_subdir(tmp_path, "*/modules") == str(
            tmp_path / "repo-1a2b" / "modules"
        )

    def test_no_match(self, tmp_path):
        with pytest.raises(FetchEngineError) as exc_info:
            DefaultFetchEngine().resolve_glob_subdir(tmp_path, "missing")
        assert "not found" in exc_info.value.details

    def test_multiple_matches(self, tmp_path):
        (tmp_path / "a").mkdir()
        (tmp_path / "b").mkdir()
        with pytest.raises(FetchEngineError) as exc_info:
            DefaultFetchEngine().resolve_glob_subdir(tmp_path, "*")
        assert "multiple" in exc_info.value.details

    def test_wildcard_matches_dot_directories(self, tmp_path):
        (tmp_path / ".terraform" / "modules").mkdir(parents=True)

        assert DefaultFetchEngine().resolve_glob_subdir(tmp_path, "*/modules") == str(
            tmp_path / ".terraform" / "modules"
        )

    @pytest.mark.parametrize(
        "pattern", ["..", "../secret", "modules/../../secret", "/etc", "*/../../secret"]
    )
    def test_escaping_pattern_rejected(self, tmp_path, pattern):
        root = tmp_path / "root"
        (root / "modules").mkdir(parents=True)
        (tmp_path / "secret").mkdir()

        with pytest.raises(FetchEngineError) as exc_info:
            DefaultFetchEngine().resolve_glob_subdir(root, pattern)
        assert "escapes" in exc_info.value.details

    def test_symlink_leaving_root_rejected(self, tmp_path):
        root = tmp_path / "root"
        root.mkdir()
        (tmp_path / "secret").mkdir()
        (root / "modules").symlink_to(tmp_path / "secret", target_is_directory=True)

        with pytest.raises(FetchEngineError) as exc_info:
            DefaultFetchEngine().resolve_glob_subdir(root, "modules")
        assert "escapes" in exc_info.value.details


class TestLocalFetch:
    @pytest.fixture
    def source_dir(self, tmp_path):
        source = tmp_path / "source"
        (source / "modules").mkdir(parents=True)
        (source / "main.tf").write_text("root")
        (source / "modules" / "vpc.tf").write_text("vpc")
        return source

    def test_plain_path(self, tmp_path, source_dir):
        dest = tmp_path / "dest"
        DefaultFetchEngine().fetch(dest, str(source_dir), {})

        assert (dest / "main.tf").read_text() == "root"
        assert (dest / "modules" / "vpc.tf").read_text() == "vpc"

    def test_file_url(self, tmp_path, source_dir):
        dest = tmp_path / "dest"
        DefaultFetchEngine().fetch(dest, f"file://{source_dir}", {})

        assert (dest / "main.tf").exists()

    def test_missing_directory(self, tmp_path):
        with pytest.raises(FetchEngineError):
            DefaultFetchEngine().fetch(tmp_path / "dest", str(tmp_path / "nope"), {})


class TestGitFetch:
    def test_clone_then_checkout_ref(self, mocker, tmp_path):
        run = mocker.patch("tfrget.registry.engine.subprocess.run")
        dest = str(tmp_path / "dest")

        DefaultFetchEngine().fetch(
            dest, "git::https://github.com/org/repo?ref=v1.0.0", {}
        )

        assert run.call_args_list[0].args[0] == [
            "git",
            "clone",
            "--",
            "https://github.com/org/repo",
            dest,
        ]
        assert run.call_args_list[1].args[0] == ["git", "checkout", "v1.0.0", "--"]
        assert run.call_args_list[1].kwargs["cwd"] == dest

    def test_shallow_clone(self, mocker, tmp_path):
        run = mocker.patch("tfrget.registry.engine.subprocess.run")
        dest = str(tmp_path / "dest")

        DefaultFetchEngine().fetch(
            dest, "https://github.com/org/repo.git?ref=main&depth=1", {}
        )

        run.assert_called_once()
        assert run.call_args.args[0] == [
            "git",
            "clone",
            "--depth",
            "1",
            "--branch",
            "main",
            "--",
            "https://github.com/org/repo.git",
            dest,
        ]

    def test_git_missing(self, mocker, tmp_path):
        mocker.patch(
            "tfrget.registry.engine.subprocess.run", side_effect=FileNotFoundError()
        )
        with pytest.raises(FetchEngineError) as exc_info:
            DefaultFetchEngine().fetch(tmp_path, "git::https://example.com/r", {})
        assert exc_info.value.details == "git executable not found"

    def test_clone_failure(self, mocker, tmp_path):
        mocker.patch(
            "tfrget.registry.engine.subprocess.run",
            side_effect=subprocess.CalledProcessError(
                128, ["git"], stderr="fatal: repository not found\n"
            ),
        )
        with pytest.raises(FetchEngineError) as exc_info:
            DefaultFetchEngine().fetch(tmp_path, "git::https://example.com/r", {})
        assert exc_info.value.details == "fatal: repository not found"

    @pytest.mark.parametrize(
        "source",
        [
            "git::--upload-pack=touch /tmp/owned",
            "git::https://example.com/r?ref=--orphan=x",
            "git::--upload-pack=touch /tmp/owned?ref=--orphan=x",
        ],
    )
    def test_option_like_url_or_ref_rejected(self, mocker, tmp_path, source):
        run = mocker.patch("tfrget.registry.engine.subprocess.run")

        with pytest.raises(FetchEngineError) as exc_info:
            DefaultFetchEngine().fetch(str(tmp_path / "dest"), source, {})

        assert "must not start with '-'" in exc_info.value.details
        run.assert_not_called()

    def test_non_numeric_depth_rejected(self, mocker, tmp_path):
        run = mocker.patch("tfrget.registry.engine.subprocess.run")

        with pytest.raises(FetchEngineError):
            DefaultFetchEngine().fetch(
                str(tmp_path / "dest"), "git::https://example.com/r?depth=--bare", {}
            )
        run.assert_not_called()


class TestArchiveFetch:
    def test_zip(self, tmp_path, archive_session):
        archive_session.get.return_value = make_response(
            200, _zip_bytes({"main.tf": "root", "modules/vpc/main.tf": "vpc"})
        )
        dest = tmp_path / "dest"

        DefaultFetchEngine(session=archive_session).fetch(
            dest, "https://example.com/module.zip", {"timeout": 7}
        )

        assert (dest / "modules" / "vpc" / "main.tf").read_text() == "vpc"
        archive_session.get.assert_called_once_with(
            "https://example.com/module.zip", stream=True, timeout=7
        )

    def test_tar_gz(self, tmp_path, archive_session):
        archive_session.get.return_value = make_response(
            200, _tar_gz_bytes({"main.tf": "root"})
        )
        dest = tmp_path / "dest"

        DefaultFetchEngine(session=archive_session).fetch(
            dest, "https://example.com/module.tar.gz", {}
        )

        assert (dest / "main.tf").read_text() == "root"

    def test_archive_query_overrides_extension(self, tmp_path, archive_session):
        archive_session.get.return_value = make_response(
            200, _zip_bytes({"main.tf": "root"})
        )

        DefaultFetchEngine(session=archive_session).fetch(
            tmp_path / "dest", "https://example.com/download?archive=zip&token=abc", {}
        )

        assert archive_session.get.call_args.args[0] == (
            "https://example.com/download?token=abc"
        )

    def test_temporary_archive_removed(self, tmp_path, temp_root, archive_session):
        archive_session.get.return_value = make_response(
            200, _zip_bytes({"main.tf": "root"})
        )

        DefaultFetchEngine(session=archive_session).fetch(
            tmp_path / "dest", "https://example.com/module.zip", {}
        )

        assert list(temp_root.iterdir()) == []

    def test_zip_traversal_rejected(self, tmp_path, archive_session):
        archive_session.get.return_value = make_response(
            200, _zip_bytes({"../evil.tf": "x"})
        )
        dest = tmp_path / "dest"

        with pytest.raises(FetchEngineError):
            DefaultFetchEngine(session=archive_session).fetch(
                dest, "https://example.com/module.zip", {}
            )
        assert not (tmp_path / "evil.tf").exists()

    def test_tar_traversal_rejected(self, tmp_path, archive_session):
        archive_session.get.return_value = make_response(
            200, _tar_gz_bytes({"../evil.tf": "x"})
        )

        with pytest.raises(FetchEngineError):
            DefaultFetchEngine(session=archive_session).fetch(
                tmp_path / "dest", "https://example.com/module.tgz", {}
            )
        assert not (tmp_path / "evil.tf").exists()

    def test_http_error(self, tmp_path, temp_root, archive_session):
        archive_session.get.return_value = make_response(
            404, url="https://example.com/module.zip"
        )

        with pytest.raises(FetchEngineError):
            DefaultFetchEngine(session=archive_session).fetch(
                tmp_path / "dest", "https://example.com/module.zip", {}
            )
        assert list(temp_root.iterdir()) == []

    def test_corrupt_zip(self, tmp_path, archive_session):
        archive_session.get.return_value = make_response(200, b"not a zip")

        with pytest.raises(FetchEngineError) as exc_info:
            DefaultFetchEngine(session=archive_session).fetch(
                tmp_path / "dest", "https://example.com/module.zip", {}
            )
        assert "zip" in exc_info.value.details

    def test_non_archive_http_source(self, tmp_path, archive_session):
        with pytest.raises(FetchEngineError) as exc_info:
            DefaultFetchEngine(session=archive_session).fetch(
                tmp_path / "dest", "https://example.com/module", {}
            )
        assert "archive" in exc_info.value.details
        archive_session.get.assert_not_called()


class TestUnsupportedSources:
    @pytest.mark.parametrize(
        "source", ["s3::https://bucket.s3.amazonaws.com/module.zip", "hg://example.com/repo"]
    )
    def test_unsupported(self, tmp_path, source):
        with pytest.raises(FetchEngineError) as exc_info:
            DefaultFetchEngine().fetch(tmp_path / "dest", source, {})
        assert exc_info.value.details == "unsupported source type"
