"""
Haar Denoise Studio
Wavelet (Haar) image denoising on bounded-parallelism compute backends
"""

import argparse
import logging
import sys


def run_gui():
    """Launch the GUI application."""
    from PySide6.QtWidgets import QApplication
    from PySide6.QtCore import Qt
    from gui.main_window import MainWindow

    QApplication.setHighDpiScaleFactorRoundingPolicy(
        Qt.HighDpiScaleFactorRoundingPolicy.PassThrough
    )

    app = QApplication(sys.argv)
    app.setApplicationName("Haar Denoise Studio")
    app.setApplicationVersion("1.0")
    app.setStyle("Fusion")

    window = MainWindow()
    window.show()
    return app.exec()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="main.py --cli",
        description="Denoise an 8-bit grayscale image with power-of-two edges."
    )
    parser.add_argument("input", nargs="?", help="input image path")
    parser.add_argument("output", nargs="?", help="output image path")
    parser.add_argument("--synthetic", type=int, metavar="SIZE",
                        help="use a noisy synthetic SIZExSIZE image instead of a file")
    parser.add_argument("--threshold", type=float, default=0.12)
    parser.add_argument("--hard", action="store_true", help="hard instead of soft thresholding")
    parser.add_argument("--backend", choices=["auto", "numpy", "torch"], default="auto")
    parser.add_argument("--max-group-size", type=int, default=None,
                        help="override the device limit on cooperating threads")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def run_cli(argv) -> int:
    """Run CLI mode. Returns the process exit status."""
    from backends.device_detector import create_backend
    from engines.denoise import DenoiseEngine
    from models.errors import DenoiseError
    from models.threshold_params import ThresholdMode, ThresholdParams
    from utils.image_io import load_image, save_image
    from utils.test_images import add_gaussian_noise, generate_shapes

    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(message)s"
    )

    if args.input is None and args.synthetic is None:
        build_parser().print_help()
        return 0

    if args.synthetic is not None and args.output is None:
        # only one positional in synthetic mode: the output path
        args.output = args.input

    reference = None
    try:
        if args.synthetic is not None:
            print("Generating test image...")
            reference = generate_shapes(args.synthetic)
            image = add_gaussian_noise(reference, sigma=20.0, seed=0)
        else:
            print(f"Going to try and load image: {args.input}")
            image = load_image(args.input)

        print(f"width: {image.shape[1]} height: {image.shape[0]}")

        params = ThresholdParams(
            threshold=args.threshold,
            mode=ThresholdMode.HARD if args.hard else ThresholdMode.SOFT
        )
        engine = DenoiseEngine(create_backend(args.backend, args.max_group_size))
        print(f"Backend: {engine.backend.describe()}")

        result = engine.denoise(image, params, reference=reference)

        print("\n=== Kernel times ===")
        for stage, elapsed in result.stage_times_ms.items():
            print(f"{stage:<30} {elapsed:9.3f} ms")
        print(f"{'Total':<30} {result.total_time_ms:9.3f} ms")
        if result.psnr is not None:
            print(f"PSNR: {result.psnr:.2f} dB  SSIM: {result.ssim:.4f}")

        if args.output:
            print(f"Going to write file: {args.output}")
            save_image(result.denoised_image, args.output)
    except (DenoiseError, ValueError, OSError) as e:
        print(f"Denoising failed: {e}", file=sys.stderr)
        return 1

    return 0


def main():
    if len(sys.argv) > 1 and sys.argv[1] == '--cli':
        return run_cli(sys.argv[2:])
    return run_gui()


if __name__ == '__main__':
    sys.exit(main())
