"""Main application window."""

from pathlib import Path

import numpy as np
from PySide6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QLabel, QStatusBar,
    QFileDialog, QMessageBox, QPushButton, QDoubleSpinBox, QComboBox,
    QGroupBox, QFormLayout, QCheckBox
)
from PySide6.QtCore import Qt, QThread, QSettings
from PySide6.QtGui import QAction

from backends.device_detector import create_backend, get_device_display_string
from engines.denoise import DenoiseEngine
from gui.widgets import ImageViewer
from gui.worker import DenoiseWorker
from models import DenoiseError, ThresholdMode, ThresholdParams
from utils.image_io import load_image, save_image
from utils.test_images import add_gaussian_noise, generate_demo_image

APP_VERSION = "1.0"
APP_NAME = "Haar Denoise Studio"

IMAGE_FILTER = "Images (*.png *.jpg *.jpeg *.bmp *.tif *.tiff *.pgm);;All Files (*)"


class MainWindow(QMainWindow):
    """
    Side-by-side view of a noisy input and its denoised output.

    The pipeline runs on a worker thread; the engine and its backend are
    created once and shared by every run.
    """

    def __init__(self, backend_name: str = "auto"):
        super().__init__()

        self.setWindowTitle(f"{APP_NAME}: Haar Wavelet Denoising")
        self.setMinimumSize(1100, 700)

        self._settings = QSettings("HaarDenoise", "HaarDenoise")

        self._image = None
        self._reference = None
        self._result = None
        self._thread = None
        self._worker = None

        self._engine = DenoiseEngine(create_backend(backend_name))

        self._init_ui()
        self._init_menu()
        self._init_statusbar()
        self._apply_dark_theme()

    def _init_ui(self):
        central_widget = QWidget()
        self.setCentralWidget(central_widget)

        layout = QHBoxLayout(central_widget)

        # Controls
        controls = QGroupBox("Denoising")
        form = QFormLayout(controls)

        self._threshold_spin = QDoubleSpinBox()
        self._threshold_spin.setRange(0.0, 10.0)
        self._threshold_spin.setDecimals(3)
        self._threshold_spin.setSingleStep(0.01)
        self._threshold_spin.setValue(ThresholdParams().threshold)
        form.addRow("Threshold:", self._threshold_spin)

        self._mode_combo = QComboBox()
        for mode in ThresholdMode:
            self._mode_combo.addItem(mode.value.capitalize(), mode)
        self._mode_combo.setCurrentIndex(self._mode_combo.findData(ThresholdMode.SOFT))
        form.addRow("Mode:", self._mode_combo)

        self._add_noise_check = QCheckBox("Add noise to demo images")
        self._add_noise_check.setChecked(True)
        form.addRow(self._add_noise_check)

        self._load_btn = QPushButton("Load Image...")
        self._load_btn.clicked.connect(self._on_load_image)
        form.addRow(self._load_btn)

        self._run_btn = QPushButton("Denoise")
        self._run_btn.setEnabled(False)
        self._run_btn.clicked.connect(self._on_run)
        form.addRow(self._run_btn)

        self._save_btn = QPushButton("Save Result...")
        self._save_btn.setEnabled(False)
        self._save_btn.clicked.connect(self._on_save)
        form.addRow(self._save_btn)

        backend_label = QLabel(f"{get_device_display_string()}\n{self._engine.backend.describe()}")
        backend_label.setWordWrap(True)
        form.addRow("Backend:", backend_label)

        self._info_label = QLabel("No image")
        self._info_label.setWordWrap(True)
        form.addRow(self._info_label)

        self._metrics_label = QLabel("")
        self._metrics_label.setWordWrap(True)
        self._metrics_label.setTextInteractionFlags(Qt.TextInteractionFlag.TextSelectableByMouse)
        form.addRow(self._metrics_label)

        controls.setFixedWidth(280)
        layout.addWidget(controls)

        # Viewers
        viewers = QHBoxLayout()
        for title, attr in (("Input", "_input_viewer"), ("Denoised", "_output_viewer")):
            column = QVBoxLayout()
            column.addWidget(QLabel(title))
            viewer = ImageViewer(label="Drop an image here" if attr == "_input_viewer" else "")
            setattr(self, attr, viewer)
            column.addWidget(viewer)
            viewers.addLayout(column)
        layout.addLayout(viewers, stretch=1)

        self._input_viewer.imageDropped.connect(self._load_path)
        self._input_viewer.viewChanged.connect(
            lambda: self._output_viewer.sync_view(self._input_viewer)
        )

    def _init_menu(self):
        menubar = self.menuBar()

        file_menu = menubar.addMenu("&File")

        load_action = QAction("&Load Image", self)
        load_action.setShortcut("Ctrl+O")
        load_action.triggered.connect(self._on_load_image)
        file_menu.addAction(load_action)

        save_action = QAction("&Save Denoised", self)
        save_action.setShortcut("Ctrl+S")
        save_action.triggered.connect(self._on_save)
        file_menu.addAction(save_action)

        file_menu.addSeparator()

        exit_action = QAction("E&xit", self)
        exit_action.setShortcut("Ctrl+Q")
        exit_action.triggered.connect(self.close)
        file_menu.addAction(exit_action)

        demo_menu = menubar.addMenu("&Demo")
        demo_submenu = demo_menu.addMenu("Load Demo Image")

        demo_images = [
            ("Shapes", "shapes"),
            ("Checkerboard", "checkerboard"),
            ("Stripes", "stripes"),
            ("Gradient", "gradient"),
        ]

        for label, key in demo_images:
            action = QAction(label, self)
            action.triggered.connect(lambda checked, k=key: self._load_demo_image(k))
            demo_submenu.addAction(action)

        run_menu = menubar.addMenu("&Run")
        run_action = QAction("&Denoise", self)
        run_action.setShortcut("F5")
        run_action.triggered.connect(self._on_run)
        run_menu.addAction(run_action)

        view_menu = menubar.addMenu("&View")
        reset_view_action = QAction("&Reset View", self)
        reset_view_action.setShortcut("Ctrl+0")
        reset_view_action.triggered.connect(self._on_reset_view)
        view_menu.addAction(reset_view_action)

        help_menu = menubar.addMenu("&Help")
        about_action = QAction("&About", self)
        about_action.triggered.connect(self._show_about)
        help_menu.addAction(about_action)

    def _on_reset_view(self):
        self._input_viewer.reset_view()
        if self._output_viewer.has_image():
            self._output_viewer.sync_view(self._input_viewer)

    def _init_statusbar(self):
        self._statusbar = QStatusBar()
        self.setStatusBar(self._statusbar)
        self._statusbar.showMessage("Ready. Load an image to begin.")

    def _show_about(self):
        QMessageBox.about(
            self, f"About {APP_NAME}",
            f"{APP_NAME} {APP_VERSION}\n\n"
            "Two-dimensional Haar wavelet denoising with hard or soft "
            "thresholding. Image edges must be powers of two."
        )

    def _on_load_image(self):
        last_folder = self._settings.value("last_open_folder", "")
        path, _ = QFileDialog.getOpenFileName(self, "Load Image", last_folder, IMAGE_FILTER)
        if path:
            self._settings.setValue("last_open_folder", str(Path(path).parent))
            self._load_path(path)

    def _load_path(self, path: str):
        try:
            image = load_image(path)
        except (DenoiseError, ValueError) as e:
            QMessageBox.critical(self, "Load Error", str(e))
            return

        self._set_input(image, None, Path(path).name)

    def _load_demo_image(self, key: str):
        reference = generate_demo_image(key)
        if reference is None:
            QMessageBox.warning(self, "Demo Error", f"Could not load demo image: {key}")
            return

        if self._add_noise_check.isChecked():
            image = add_gaussian_noise(reference, sigma=20.0, seed=0)
        else:
            image = reference
            reference = None
        self._set_input(image, reference, f"Demo: {key}")

    def _set_input(self, image: np.ndarray, reference, title: str):
        self._image = image
        self._reference = reference
        self._result = None

        h, w = image.shape
        self._info_label.setText(f"{title}\n{w} × {h}")
        self._metrics_label.setText("")
        self._input_viewer.set_image(image)
        self._output_viewer.clear_image()

        self._run_btn.setEnabled(True)
        self._save_btn.setEnabled(False)
        self._statusbar.showMessage(f"Loaded {title}")

    def _on_run(self):
        if not self._input_viewer.has_image() or self._thread is not None:
            return

        params = ThresholdParams(
            threshold=self._threshold_spin.value(),
            mode=self._mode_combo.currentData()
        )

        self._run_btn.setEnabled(False)
        self._statusbar.showMessage("Denoising...")

        self._thread = QThread()
        self._worker = DenoiseWorker(self._engine, self._image, params, self._reference)
        self._worker.moveToThread(self._thread)

        self._thread.started.connect(self._worker.run)
        self._worker.finished.connect(self._on_denoise_finished)
        self._worker.error.connect(self._on_denoise_error)
        self._worker.progress.connect(self._statusbar.showMessage)
        self._worker.finished.connect(self._thread.quit)
        self._worker.error.connect(self._thread.quit)
        self._thread.finished.connect(self._cleanup_thread)

        self._thread.start()

    def _on_denoise_finished(self, result):
        self._result = result
        self._output_viewer.set_image(result.denoised_image)
        self._output_viewer.sync_view(self._input_viewer)

        lines = [f"{stage}: {ms:.3f} ms" for stage, ms in result.stage_times_ms.items()]
        lines.append(f"Total: {result.total_time_ms:.3f} ms")
        if result.psnr is not None:
            lines.append(f"PSNR: {result.psnr:.2f} dB")
            lines.append(f"SSIM: {result.ssim:.4f}")
        self._metrics_label.setText("\n".join(lines))

        self._save_btn.setEnabled(True)
        self._statusbar.showMessage(
            f"Denoised ({result.mode.value}, threshold {result.threshold:g}) "
            f"in {result.total_time_ms:.1f} ms on {result.backend_name}"
        )

    def _on_denoise_error(self, message: str):
        QMessageBox.critical(self, "Denoising Error", message)
        self._statusbar.showMessage("Denoising failed")

    def _cleanup_thread(self):
        if self._thread:
            self._thread.deleteLater()
            self._thread = None
        if self._worker:
            self._worker.deleteLater()
            self._worker = None
        self._run_btn.setEnabled(self._image is not None)

    def _on_save(self):
        if self._result is None:
            return

        last_folder = self._settings.value("last_export_folder", "")
        path, _ = QFileDialog.getSaveFileName(
            self, "Save Denoised Image", str(Path(last_folder) / "denoised.png"), IMAGE_FILTER
        )
        if not path:
            return

        self._settings.setValue("last_export_folder", str(Path(path).parent))
        try:
            save_image(self._result.denoised_image, path)
        except (DenoiseError, OSError) as e:
            QMessageBox.critical(self, "Save Error", str(e))
            return
        self._statusbar.showMessage(f"Saved {path}")

    def closeEvent(self, event):
        if self._thread is not None:
            self._thread.quit()
            self._thread.wait()
        super().closeEvent(event)

    def _apply_dark_theme(self):
        self.setStyleSheet("""
            QMainWindow {
                background-color: #1a1a1a;
            }
            QWidget {
                background-color: #242424;
                color: #e8e8e8;
                font-family: 'Segoe UI', 'SF Pro Display', 'Arial', sans-serif;
                font-size: 12px;
            }
            QGroupBox {
                font-weight: 600;
                border: 1px solid #3d3d3d;
                border-radius: 6px;
                margin-top: 14px;
                padding-top: 12px;
                background-color: #2a2a2a;
            }
            QGroupBox::title {
                subcontrol-origin: margin;
                left: 12px;
                padding: 0 6px;
                color: #999;
            }
            QPushButton {
                background: qlineargradient(x1:0, y1:0, x2:0, y2:1,
                    stop:0 #404040, stop:1 #353535);
                border: 1px solid #4a4a4a;
                border-radius: 5px;
                padding: 8px 16px;
                min-height: 22px;
            }
            QPushButton:hover {
                border-color: #5a5a5a;
            }
            QPushButton:disabled {
                background: #2a2a2a;
                color: #555;
                border-color: #383838;
            }
            QDoubleSpinBox, QComboBox {
                background-color: #1e1e1e;
                border: 1px solid #3d3d3d;
                border-radius: 4px;
                padding: 4px 8px;
            }
            QStatusBar {
                background-color: #1a1a1a;
                color: #999;
            }
            QMenuBar::item:selected, QMenu::item:selected {
                background-color: #4a9eff;
            }
        """)
