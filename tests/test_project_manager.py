"""Tests for saving and loading .whm survey files."""

import json
import zipfile

import pytest

from wifi_heatmap.data_models import FloorPlanImage, Sample
from wifi_heatmap.floor_registry import FloorPlanRegistry
from wifi_heatmap.project_manager import FORMAT_VERSION, ProjectManager


@pytest.fixture
def registry(tmp_path):
    image_path = tmp_path / "ground.png"
    image_path.write_bytes(b"\x89PNG fake image data")

    registry = FloorPlanRegistry()
    registry.add_floor("Ground", plan_image=FloorPlanImage(str(image_path), 640, 480))
    registry.add_sample("Ground", Sample(10, 20, -45))
    registry.add_sample("Ground", Sample(30, 40, -70, distance=2.5, quality=0.6))
    registry.create_blank_floor()
    return registry


def test_save_adds_extension(registry, tmp_path):
    assert ProjectManager.save_project(registry, str(tmp_path / "survey"))
    assert (tmp_path / "survey.whm").exists()


def test_archive_contents(registry, tmp_path):
    path = tmp_path / "survey.whm"
    ProjectManager.save_project(registry, str(path))

    with zipfile.ZipFile(path) as archive:
        assert set(archive.namelist()) == {"project.json", "images/floor_0.png"}
        data = json.loads(archive.read("project.json"))
    assert data["format_version"] == FORMAT_VERSION
    assert data["current_floor_id"] == "Floor 2"
    assert data["floors"][0]["plan_image"]["uri"] == "images/floor_0.png"
    assert data["floors"][1]["plan_image"] is None

    # Saving must not touch the live registry
    assert registry.get("Ground").plan_image.uri.endswith("ground.png")


def test_round_trip(registry, tmp_path):
    path = tmp_path / "survey.whm"
    ProjectManager.save_project(registry, str(path))

    loaded, extract_dir = ProjectManager.load_project(str(path), extract_dir=str(tmp_path / "extracted"))
    assert loaded.ids() == ["Ground", "Floor 2"]
    assert loaded.current_id == "Floor 2"

    ground = loaded.get("Ground")
    assert ground.dimensions == registry.get("Ground").dimensions
    assert ground.plan_image.uri == str(tmp_path / "extracted" / "images" / "floor_0.png")
    assert [(s.x, s.y, s.strength, s.distance) for s in ground.samples] == [
        (10, 20, -45, None), (30, 40, -70, 2.5)]


def test_load_missing_file(tmp_path):
    assert ProjectManager.load_project(str(tmp_path / "missing.whm")) == (None, None)


def test_load_corrupt_file(tmp_path):
    path = tmp_path / "broken.whm"
    path.write_bytes(b"not a zip")
    assert ProjectManager.load_project(str(path)) == (None, None)


def test_is_valid_project_file(registry, tmp_path):
    path = tmp_path / "survey.whm"
    ProjectManager.save_project(registry, str(path))
    assert ProjectManager.is_valid_project_file(str(path))

    other = tmp_path / "other.whm"
    with zipfile.ZipFile(other, "w") as archive:
        archive.writestr("project.json", json.dumps({"floors": []}))
    assert not ProjectManager.is_valid_project_file(str(other))
    assert not ProjectManager.is_valid_project_file(str(tmp_path / "survey.zip"))
