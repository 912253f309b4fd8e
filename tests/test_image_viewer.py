"""Tests for the grayscale image viewer."""

import os

import numpy as np
import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
QtWidgets = pytest.importorskip("PySide6.QtWidgets")

from gui.widgets.image_viewer import ImageViewer, to_qimage
from utils.test_images import generate_checkerboard


@pytest.fixture(scope="module")
def qapp():
    return QtWidgets.QApplication.instance() or QtWidgets.QApplication([])


def test_to_qimage_grayscale(qapp):
    image = generate_checkerboard(64, 8)
    qimage = to_qimage(image)
    assert (qimage.width(), qimage.height()) == (64, 64)
    assert qimage.pixelColor(0, 0).red() == image[0, 0]


def test_has_image_follows_set_and_clear(qapp):
    viewer = ImageViewer()
    assert not viewer.has_image()
    viewer.set_image(generate_checkerboard(64, 8))
    assert viewer.has_image()
    viewer.clear_image()
    assert not viewer.has_image()


def test_reset_view_restores_fit(qapp):
    viewer = ImageViewer()
    viewer.resize(300, 300)
    viewer.set_image(generate_checkerboard(128, 16))
    fitted = viewer.transform().m11()

    emitted = []
    viewer.viewChanged.connect(lambda: emitted.append(True))
    viewer.scale(3.0, 3.0)
    viewer.reset_view()

    assert viewer.transform().m11() < 2.0 * fitted
    assert emitted


def test_reset_view_without_image_is_noop(qapp):
    viewer = ImageViewer()
    emitted = []
    viewer.viewChanged.connect(lambda: emitted.append(True))
    viewer.reset_view()
    assert not emitted
