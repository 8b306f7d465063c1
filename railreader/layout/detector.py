"""
YOLOv8 DocLayNet layout detector.

Wraps ultralytics YOLO and emits raw detection rows
``[class_id, confidence, xmin, ymin, xmax, ymax]`` in the pixel space of
the image it was given, with class ids translated into the
PP-DocLayoutV3 table used by the rest of the package.

If the model weights are not found locally, they are automatically
downloaded from HuggingFace.
"""

import logging
import urllib.request
from pathlib import Path
from typing import Dict, Optional, Union

import numpy as np
from PIL import Image
from ultralytics import YOLO

from .models import class_index_to_name, class_name_to_index

logger = logging.getLogger(__name__)

_DEFAULT_MODEL_DIR = Path(__file__).resolve().parents[2] / "models"
_DEFAULT_MODEL_NAME = "yolov8x_doclaynet.pt"
_DEFAULT_MODEL_PATH = _DEFAULT_MODEL_DIR / _DEFAULT_MODEL_NAME

# HuggingFace download URL (DILHTWD, 137 MB)
_HF_MODEL_URL = (
    "https://huggingface.co/DILHTWD/"
    "documentlayoutsegmentation_YOLOv8_ondoclaynet/resolve/main/"
    "yolov8x-doclaynet-epoch64-imgsz640-initiallr1e-4-finallr1e-5.pt"
)

# DocLayNet class name → PP-DocLayoutV3 class name
DOCLAYNET_TO_LAYOUT_CLASS: Dict[str, str] = {
    "caption": "figure_title",
    "footnote": "footnote",
    "formula": "display_formula",
    "list_item": "text",
    "page_footer": "footer",
    "page_header": "header",
    "picture": "image",
    "section_header": "paragraph_title",
    "table": "table",
    "text": "text",
    "title": "doc_title",
}

UNKNOWN_CLASS_ID = -1


def _download_model(url: str, dest: Path) -> None:
    """Download the YOLO model weights with progress reporting."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    logger.info("Downloading layout model to %s ...", dest)
    logger.info("  URL: %s", url)

    def _progress(block_num, block_size, total_size):
        if total_size > 0:
            pct = min(100, block_num * block_size * 100 // total_size)
            size_mb = total_size / (1024 * 1024)
            print(
                f"\r  Progress: {pct}% of {size_mb:.1f} MB",
                end="",
                flush=True,
            )

    try:
        urllib.request.urlretrieve(url, str(dest), reporthook=_progress)
        print()  # newline after progress
        logger.info("Download complete: %s", dest)
    except Exception as e:
        # Clean up partial download
        if dest.exists():
            dest.unlink()
        raise RuntimeError(f"Failed to download layout model from {url}: {e}") from e


def resolve_class_id(model_name: str) -> int:
    """
    Translate a model class name into a layout class id.

    Names already in the layout table pass through; DocLayNet names are
    mapped; anything else becomes ``UNKNOWN_CLASS_ID``.
    """
    name = model_name.strip().lower().replace("-", "_").replace(" ", "_")
    direct = class_name_to_index(name)
    if direct is not None:
        return direct
    mapped = DOCLAYNET_TO_LAYOUT_CLASS.get(name)
    if mapped is not None:
        idx = class_name_to_index(mapped)
        if idx is not None:
            return idx
    return UNKNOWN_CLASS_ID


class LayoutDetector:
    """
    Detects document layout regions using a YOLOv8 model trained on
    DocLayNet.

    Usage::

        detector = LayoutDetector()
        rows = detector.detect_rows(pil_image)
        analysis = analyze_page(rows, np.asarray(pil_image), *pil_image.size, w, h)
    """

    def __init__(
        self,
        model_path: Optional[Union[str, Path]] = None,
        device: Optional[str] = None,
    ):
        """
        Load the YOLO model, downloading if necessary.

        Args:
            model_path: Path to ``.pt`` weights.  Defaults to
                        ``models/yolov8x_doclaynet.pt`` in the project root.
            device:     Force a device (``"cpu"``, ``"cuda:0"``, …).
                        ``None`` lets ultralytics auto-select.

        Raises:
            RuntimeError: If the download fails.
        """
        path = Path(model_path) if model_path else _DEFAULT_MODEL_PATH

        if not path.exists():
            logger.info("Model not found at %s", path)
            _download_model(_HF_MODEL_URL, _DEFAULT_MODEL_PATH)
            path = _DEFAULT_MODEL_PATH

        self.model = YOLO(str(path), task="detect")
        self.device = device
        self._class_ids = self._build_class_ids(self.model.names)

    @staticmethod
    def _build_class_ids(names: Dict[int, str]) -> Dict[int, int]:
        """Model class index → layout class id."""
        class_ids = {int(idx): resolve_class_id(str(name)) for idx, name in names.items()}
        unmapped = sorted(
            str(names[idx]) for idx, cid in class_ids.items() if cid == UNKNOWN_CLASS_ID
        )
        if unmapped:
            logger.warning("Model classes without a layout mapping: %s", unmapped)
        return class_ids

    def detect_rows(
        self,
        image: Image.Image,
        confidence: float = 0.25,
        iou_threshold: float = 0.7,
        image_size: int = 1024,
    ) -> np.ndarray:
        """
        Run layout detection on a rendered page image.

        YOLO's own NMS runs with a loose *iou_threshold*; the stricter
        post-processing happens in ``analyze_page``.

        Args:
            image:          PIL Image (RGB) of the rendered page.
            confidence:     Minimum confidence to emit a row.
            iou_threshold:  IoU threshold for the model's internal NMS.
            image_size:     Inference resolution (longer side).

        Returns:
            ``(N, 6)`` float array in *image* pixel coordinates.
        """
        results = self.model.predict(
            source=image,
            conf=confidence,
            iou=iou_threshold,
            imgsz=image_size,
            device=self.device,
            verbose=False,
        )

        if not results:
            return np.zeros((0, 6), dtype=np.float32)

        boxes = results[0].boxes
        if boxes is None or len(boxes) == 0:
            return np.zeros((0, 6), dtype=np.float32)

        coords = boxes.xyxy.cpu().numpy()
        confs = boxes.conf.cpu().numpy()
        classes = boxes.cls.cpu().numpy().astype(int)

        class_ids = np.array(
            [self._class_ids.get(int(c), UNKNOWN_CLASS_ID) for c in classes],
            dtype=np.float32,
        )
        rows = np.column_stack([class_ids, confs, coords]).astype(np.float32)
        logger.debug("Detector produced %d rows", len(rows))
        return rows

    @property
    def class_names(self) -> Dict[int, str]:
        """Model class index → layout class name."""
        return {idx: class_index_to_name(cid) for idx, cid in self._class_ids.items()}

    def __repr__(self) -> str:
        n = len(self._class_ids)
        return f"LayoutDetector({n} classes, device={self.device})"
