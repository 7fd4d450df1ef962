"""Tests for overlay_assets — recursive copy into the output, collisions."""

from __future__ import annotations

from pathlib import Path

import pytest

from pagewright.core.assets import overlay_assets
from pagewright.errors import PackagingError


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    out = tmp_path / "_site"
    out.mkdir()
    (out / "index.html").write_text("<html>generated</html>")
    return out


@pytest.fixture
def assets_dir(tmp_path: Path) -> Path:
    assets = tmp_path / "assets"
    (assets / "img").mkdir(parents=True)
    (assets / "intro_demo.mp4").write_bytes(b"video")
    (assets / "img" / "logo.svg").write_text("<svg/>")
    return assets


class TestOverlayAssets:
    def test_copies_tree_under_assets(self, assets_dir: Path, output_dir: Path):
        result = overlay_assets(assets_dir, output_dir)

        assert (output_dir / "assets" / "intro_demo.mp4").read_bytes() == b"video"
        assert (output_dir / "assets" / "img" / "logo.svg").read_text() == "<svg/>"
        assert result.copied == ["assets/img/logo.svg", "assets/intro_demo.mp4"]
        assert result.collisions == []

    def test_generated_files_kept(self, assets_dir: Path, output_dir: Path):
        overlay_assets(assets_dir, output_dir)
        assert (output_dir / "index.html").read_text() == "<html>generated</html>"

    def test_asset_wins_on_collision(self, assets_dir: Path, output_dir: Path):
        (output_dir / "assets").mkdir()
        (output_dir / "assets" / "intro_demo.mp4").write_bytes(b"generated placeholder")
        (output_dir / "assets" / "theme.css").write_text("body {}")

        result = overlay_assets(assets_dir, output_dir)

        assert (output_dir / "assets" / "intro_demo.mp4").read_bytes() == b"video"
        assert (output_dir / "assets" / "theme.css").exists()
        assert result.collisions == ["assets/intro_demo.mp4"]

    def test_collision_logged(self, assets_dir: Path, output_dir: Path, caplog: pytest.LogCaptureFixture):
        (output_dir / "assets").mkdir()
        (output_dir / "assets" / "intro_demo.mp4").write_bytes(b"x")
        with caplog.at_level("WARNING", logger="pagewright.core.assets"):
            overlay_assets(assets_dir, output_dir)
        assert "overwrites generated" in caplog.text

    def test_empty_assets_dir(self, tmp_path: Path, output_dir: Path):
        empty = tmp_path / "assets"
        empty.mkdir()
        result = overlay_assets(empty, output_dir)
        assert result.copied == []
        assert (output_dir / "assets").is_dir()

    def test_missing_assets_dir(self, tmp_path: Path, output_dir: Path):
        with pytest.raises(PackagingError, match="Assets directory not found"):
            overlay_assets(tmp_path / "assets", output_dir)

    def test_missing_output_dir(self, assets_dir: Path, tmp_path: Path):
        with pytest.raises(PackagingError, match="Output directory not found"):
            overlay_assets(assets_dir, tmp_path / "nowhere")

    def test_file_where_directory_expected(self, assets_dir: Path, output_dir: Path):
        (output_dir / "assets").write_text("not a directory")
        with pytest.raises(PackagingError, match="is not a directory"):
            overlay_assets(assets_dir, output_dir)

    def test_asset_file_over_generated_directory(self, assets_dir: Path, output_dir: Path):
        (output_dir / "assets" / "intro_demo.mp4").mkdir(parents=True)
        with pytest.raises(PackagingError, match="collides with generated directory"):
            overlay_assets(assets_dir, output_dir)


class TestSymlinkedAssets:
    def test_symlinked_directory_copied(self, tmp_path: Path, assets_dir: Path, output_dir: Path):
        shared = tmp_path / "shared_media"
        shared.mkdir()
        (shared / "clip.mp4").write_bytes(b"clip")
        (assets_dir / "media").symlink_to(shared, target_is_directory=True)

        result = overlay_assets(assets_dir, output_dir)

        copied = output_dir / "assets" / "media" / "clip.mp4"
        assert copied.read_bytes() == b"clip"
        assert not copied.is_symlink()
        assert "assets/media/clip.mp4" in result.copied

    def test_symlinked_file_copied_as_file(self, tmp_path: Path, assets_dir: Path, output_dir: Path):
        (tmp_path / "poster.png").write_bytes(b"png")
        (assets_dir / "poster.png").symlink_to(tmp_path / "poster.png")
        overlay_assets(assets_dir, output_dir)
        assert (output_dir / "assets" / "poster.png").read_bytes() == b"png"

    def test_link_cycle_not_followed_forever(self, assets_dir: Path, output_dir: Path):
        (assets_dir / "img" / "loop").symlink_to(assets_dir, target_is_directory=True)
        result = overlay_assets(assets_dir, output_dir)
        assert result.copied == ["assets/img/logo.svg", "assets/intro_demo.mp4"]

    def test_dangling_link(self, tmp_path: Path, assets_dir: Path, output_dir: Path):
        (assets_dir / "gone.mp4").symlink_to(tmp_path / "missing.mp4")
        with pytest.raises(PackagingError, match="dangling symlink"):
            overlay_assets(assets_dir, output_dir)
