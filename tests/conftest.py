"""
Shared pytest fixtures
"""
import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PIL import Image
from PySide6.QtWidgets import QApplication

from sitemark.editor.annotations import PALETTE, Annotation, AnnotationType
from sitemark.editor.session import AnnotationSession
from sitemark.editor.tools import EditorPolicy
from sitemark.services.config_service import ENV_SERVER_URL, ENV_TOKEN, ConfigService


@pytest.fixture(scope="session")
def qapp():
    """One QApplication for the whole test run"""
    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture
def session(qapp):
    """Annotation session with the default policy"""
    return AnnotationSession(policy=EditorPolicy(), color=PALETTE[0])


@pytest.fixture
def config(tmp_path, monkeypatch):
    """ConfigService backed by a temporary file, free of env overrides"""
    monkeypatch.delenv(ENV_SERVER_URL, raising=False)
    monkeypatch.delenv(ENV_TOKEN, raising=False)
    return ConfigService(tmp_path / "config.json")


@pytest.fixture
def photo_file(tmp_path):
    """Small JPEG on disk"""
    path = tmp_path / "photo.jpg"
    Image.new("RGB", (64, 48), color=(200, 120, 40)).save(path, "JPEG")
    return path


@pytest.fixture
def sample_annotations():
    """One committed annotation of every type"""
    return [
        Annotation(type=AnnotationType.MARKER, x=5, y=6, color=PALETTE[0]),
        Annotation(type=AnnotationType.ARROW, x=10, y=10, x2=50, y2=60, color=PALETTE[1]),
        Annotation(type=AnnotationType.CIRCLE, x=100, y=120, color=PALETTE[2]),
        Annotation(type=AnnotationType.TEXT, x=30, y=40, text="Crack", color=PALETTE[3]),
        Annotation(
            type=AnnotationType.MEASUREMENT, x=0, y=0, x2=100, y2=0,
            text="10 ft", color=PALETTE[4],
        ),
    ]
