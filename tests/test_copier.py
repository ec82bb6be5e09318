from __future__ import annotations

from pathlib import Path

import pytest

from dirbuilder.copier import CopyError, copy_files, expand_selectors, remove_tree


def _tree(root: Path, files: list[str]) -> None:
    for rel in files:
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(rel, encoding="utf-8")


def test_expand_keeps_selector_order_and_dedupes(tmp_path: Path) -> None:
    _tree(tmp_path, ["b.txt", "a.txt", "c.md"])
    assert expand_selectors(["*.md", "*.txt", "a.txt"], tmp_path) == ["c.md", "a.txt", "b.txt"]


def test_expand_negation_removes_earlier_matches(tmp_path: Path) -> None:
    _tree(tmp_path, ["a.txt", "b.txt", "keep.md"])
    assert expand_selectors(["*", "!b.txt"], tmp_path) == ["a.txt", "keep.md"]


def test_expand_skips_dotfiles_unless_named(tmp_path: Path) -> None:
    _tree(tmp_path, [".env", "app.py"])
    assert expand_selectors(["*"], tmp_path) == ["app.py"]
    assert expand_selectors([".env"], tmp_path) == [".env"]


def test_expand_globstar_includes_directories(tmp_path: Path) -> None:
    _tree(tmp_path, ["css/site.css", "css/vendor/x.css"])
    assert expand_selectors(["css/**"], tmp_path) == ["css", "css/site.css", "css/vendor", "css/vendor/x.css"]


def test_copy_preserves_relative_structure(tmp_path: Path) -> None:
    src = tmp_path / "src"
    dest = tmp_path / "dest"
    _tree(src, ["index.html", "css/site.css", "notes.md"])

    result = copy_files(["*.html", "css/**"], src, dest)

    assert (dest / "index.html").read_text(encoding="utf-8") == "index.html"
    assert (dest / "css" / "site.css").read_text(encoding="utf-8") == "css/site.css"
    assert not (dest / "notes.md").exists()
    assert result.copied_files == 2
    assert result.created_dirs == 1


def test_copy_with_no_selectors_creates_empty_dest(tmp_path: Path) -> None:
    dest = tmp_path / "dest"
    result = copy_files([], tmp_path, dest)
    assert dest.is_dir()
    assert list(dest.iterdir()) == []
    assert result.copied_files == 0


def test_copy_failure_raises_copy_error(tmp_path: Path) -> None:
    src = tmp_path / "src"
    _tree(src, ["a.txt"])
    blocker = tmp_path / "dest"
    blocker.write_text("not a directory", encoding="utf-8")
    with pytest.raises(CopyError):
        copy_files(["a.txt"], src, blocker)


def test_remove_tree_handles_dirs_files_and_missing(tmp_path: Path) -> None:
    _tree(tmp_path / "out", ["a/b/c.txt"])
    remove_tree(tmp_path / "out")
    assert not (tmp_path / "out").exists()

    single = tmp_path / "single.txt"
    single.write_text("x", encoding="utf-8")
    remove_tree(single)
    assert not single.exists()

    remove_tree(tmp_path / "never-existed")


def test_copy_into_dest_inside_cwd_does_not_copy_dest_into_itself(tmp_path: Path) -> None:
    _tree(tmp_path, ["a.txt"])
    dest = tmp_path / "dist"

    copy_files(["**"], tmp_path, dest)

    assert sorted(p.relative_to(tmp_path).as_posix() for p in dest.rglob("*")) == ["dist/a.txt"]
