#!/usr/bin/env python3
# -*- coding: utf-8 -*-

# -----------------------------------------------------------------------------
# WiFi Heatmap
#
# wifi_heatmap/project_manager.py
#
# Description:
# Survey file management. Saves and loads floor registries in a ZIP-based
# .whm format with JSON metadata and embedded floor plan images.
# -----------------------------------------------------------------------------

import os
import json
import zipfile
import tempfile
import shutil
from pathlib import Path
from typing import Optional, Tuple

from .data_models import HeatmapError
from .floor_registry import FloorPlanRegistry


PROJECT_EXTENSION = '.whm'
FORMAT_VERSION = 1

_LOAD_ERRORS = (OSError, zipfile.BadZipFile, json.JSONDecodeError, KeyError, TypeError, ValueError, HeatmapError)


class ProjectManager:
    """
    Manages saving and loading of survey projects in .whm format.

    The .whm file is a ZIP archive containing:
    - project.json: floors with dimensions and samples in capture order
    - images/: floor plan images referenced by the floors
    """

    @staticmethod
    def save_project(registry: FloorPlanRegistry, file_path: str) -> bool:
        """
        Save a floor registry to a .whm file.

        Args:
            registry: The floors to save
            file_path: Path where to save the .whm file

        Returns:
            bool: True if save was successful, False otherwise
        """
        if not file_path.lower().endswith(PROJECT_EXTENSION):
            file_path += PROJECT_EXTENSION

        try:
            with tempfile.TemporaryDirectory() as build_dir:
                images_dir = os.path.join(build_dir, 'images')
                os.makedirs(images_dir, exist_ok=True)

                project_data = registry.to_dict()
                project_data['format_version'] = FORMAT_VERSION

                # Copy image files and make their paths archive-relative
                for index, floor_data in enumerate(project_data['floors']):
                    plan_image = floor_data['plan_image']
                    if plan_image and plan_image['uri'] and os.path.exists(plan_image['uri']):
                        image_filename = f"floor_{index}{Path(plan_image['uri']).suffix}"
                        shutil.copy2(plan_image['uri'], os.path.join(images_dir, image_filename))
                        plan_image['uri'] = f"images/{image_filename}"

                project_json_path = os.path.join(build_dir, 'project.json')
                with open(project_json_path, 'w', encoding='utf-8') as f:
                    json.dump(project_data, f, indent=2, ensure_ascii=False)

                with zipfile.ZipFile(file_path, 'w', zipfile.ZIP_DEFLATED) as zipf:
                    for root, dirs, files in os.walk(build_dir):
                        for file in files:
                            file_path_full = os.path.join(root, file)
                            arc_name = os.path.relpath(file_path_full, build_dir)
                            zipf.write(file_path_full, arc_name)

            return True

        except (OSError, TypeError, ValueError) as e:
            print(f"Error saving project: {e}")
            return False

    @staticmethod
    def load_project(file_path: str, extract_dir: Optional[str] = None,
                     validate_bounds=False) -> Tuple[Optional[FloorPlanRegistry], Optional[str]]:
        """
        Load a floor registry from a .whm file.

        Args:
            file_path: Path to the .whm file to load
            extract_dir: Directory to extract project files to (creates temp if None)
            validate_bounds: Passed on to the loaded registry

        Returns:
            Tuple[FloorPlanRegistry, str]: Loaded registry and extraction directory
                                           path, or (None, None) if loading failed
        """
        if not os.path.exists(file_path):
            print(f"Project file not found: {file_path}")
            return None, None

        try:
            if extract_dir is None:
                extract_dir = tempfile.mkdtemp(prefix='whm_project_')
            else:
                os.makedirs(extract_dir, exist_ok=True)

            with zipfile.ZipFile(file_path, 'r') as zipf:
                zipf.extractall(extract_dir)

            project_json_path = os.path.join(extract_dir, 'project.json')
            if not os.path.exists(project_json_path):
                print(f"project.json not found in {PROJECT_EXTENSION} file")
                return None, None

            with open(project_json_path, 'r', encoding='utf-8') as f:
                project_data = json.load(f)

            # Convert relative image paths to absolute paths
            for floor_data in project_data['floors']:
                plan_image = floor_data.get('plan_image')
                if plan_image and plan_image.get('uri'):
                    plan_image['uri'] = os.path.join(extract_dir, plan_image['uri'])

            registry = FloorPlanRegistry.from_dict(project_data, validate_bounds=validate_bounds)
            return registry, extract_dir

        except _LOAD_ERRORS as e:
            print(f"Error loading project: {e}")
            return None, None

    @staticmethod
    def is_valid_project_file(file_path: str) -> bool:
        """
        Check if a file is a valid .whm project file.

        Args:
            file_path: Path to file to check

        Returns:
            bool: True if file appears to be a valid .whm project
        """
        if not file_path.lower().endswith(PROJECT_EXTENSION) or not os.path.exists(file_path):
            return False

        try:
            with zipfile.ZipFile(file_path, 'r') as zipf:
                if 'project.json' not in zipf.namelist():
                    return False

                with zipf.open('project.json') as f:
                    project_data = json.load(f)

            required_keys = ['floors', 'current_floor_id']
            return all(key in project_data for key in required_keys)

        except _LOAD_ERRORS:
            return False
