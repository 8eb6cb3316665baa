from __future__ import annotations

from io import BytesIO

import numpy as np
from PIL import Image, ImageFilter, ImageOps, UnidentifiedImageError

from image_library.domain.entities.crop_data import CropPosition
from image_library.domain.exceptions import ValidationError
from image_library.domain.services.geometry import anchor_offset, bounded_box, fit_width

_FORMATS = {
    "jpg": "JPEG",
    "jpeg": "JPEG",
    "png": "PNG",
    "webp": "WEBP",
    "gif": "GIF",
    "bmp": "BMP",
    "tif": "TIFF",
    "tiff": "TIFF",
}

_SEPIA = np.array(
    [
        [0.393, 0.769, 0.189],
        [0.349, 0.686, 0.168],
        [0.272, 0.534, 0.131],
    ],
    dtype=np.float32,
)

# clockwise degrees to Pillow transposes, which rotate counter-clockwise
_ROTATIONS = {
    90: Image.Transpose.ROTATE_270,
    180: Image.Transpose.ROTATE_180,
    270: Image.Transpose.ROTATE_90,
}


class ProcessingService:
    """Pixel operations used by the derivation pipeline.

    Geometry and resampling go through Pillow; colour math is done in NumPy on
    float32 arrays normalized to [0, 1], (H, W, 3) for RGB.
    """

    # --------- codec ---------
    @staticmethod
    def load(data: bytes) -> Image.Image:
        try:
            img = Image.open(BytesIO(data))
            img.load()
        except (UnidentifiedImageError, OSError) as exc:
            raise ValidationError(f"Unable to decode image: {exc}") from exc
        # Bake EXIF orientation into the pixels so widths/heights are what viewers see
        return ImageOps.exif_transpose(img)

    @staticmethod
    def format_for(extension: str) -> str:
        ext = extension.lower().lstrip(".")
        fmt = _FORMATS.get(ext) or Image.registered_extensions().get(f".{ext}")
        if fmt is None:
            raise ValidationError(f"Unsupported image extension '{extension}'")
        return fmt

    @staticmethod
    def encode(img: Image.Image, extension: str, quality: int = 85) -> bytes:
        fmt = ProcessingService.format_for(extension)
        out = img
        if fmt == "JPEG" and out.mode not in ("RGB", "L"):
            out = out.convert("RGB")
        elif fmt == "WEBP" and out.mode not in ("RGB", "RGBA"):
            out = out.convert("RGBA" if "A" in out.getbands() else "RGB")
        elif fmt == "PNG" and out.mode not in ("RGB", "RGBA", "L", "LA", "P"):
            out = out.convert("RGBA")
        buf = BytesIO()
        if fmt == "JPEG":
            out.save(buf, format=fmt, quality=quality, optimize=True)
        elif fmt == "WEBP":
            out.save(buf, format=fmt, quality=quality, method=6)
        elif fmt == "PNG":
            out.save(buf, format=fmt, optimize=True)
        else:
            out.save(buf, format=fmt)
        return buf.getvalue()

    @staticmethod
    def optimize(data: bytes, extension: str, quality: int = 85) -> tuple[bytes, Image.Image]:
        """Re-encode an upload, dropping metadata. Returns the bytes and the decoded image."""
        img = ProcessingService.load(data)
        return ProcessingService.encode(img, extension, quality), img

    # --------- geometry ---------
    @staticmethod
    def manual_crop(img: Image.Image, width: int, height: int, x: int, y: int) -> Image.Image:
        box = bounded_box(img.width, img.height, width, height, x, y)
        return img.crop(box)

    @staticmethod
    def crop(img: Image.Image, width: int, height: int, position: CropPosition) -> Image.Image:
        width = min(width, img.width)
        height = min(height, img.height)
        x, y = anchor_offset(img.width, img.height, width, height, position)
        return img.crop((x, y, x + width, y + height))

    @staticmethod
    def fit_max(img: Image.Image, max_width: int) -> Image.Image:
        size = fit_width(img.width, img.height, max_width)
        if size == img.size:
            return img
        return img.resize(size, Image.Resampling.LANCZOS)

    # rotate is clockwise; a negative scale mirrors that axis
    @staticmethod
    def orient(img: Image.Image, rotate: int = 0, scale_x: int = 1, scale_y: int = 1) -> Image.Image:
        if rotate:
            img = img.transpose(_ROTATIONS[rotate])
        if scale_x < 0:
            img = img.transpose(Image.Transpose.FLIP_LEFT_RIGHT)
        if scale_y < 0:
            img = img.transpose(Image.Transpose.FLIP_TOP_BOTTOM)
        return img

    # --------- effects ---------
    # blur: 0..100, radius grows linearly
    @staticmethod
    def blur(img: Image.Image, amount: int) -> Image.Image:
        if amount <= 0:
            return img
        return img.filter(ImageFilter.GaussianBlur(radius=amount / 2.0))

    # Grayscale (Luminosity): 0.299*R + 0.587*G + 0.114*B, kept as 3 channels
    @staticmethod
    def greyscale(img: Image.Image) -> Image.Image:
        rgb, alpha = ProcessingService._split_alpha(img)
        mat = ProcessingService._to_matrix(rgb)
        weights = np.array([0.299, 0.587, 0.114], dtype=np.float32)
        grey = np.dot(mat, weights)
        out = np.repeat(grey[..., None], 3, axis=2)
        return ProcessingService._from_matrix(out, alpha)

    # Sepia: classic Microsoft tone matrix, clipped to [0, 1]
    @staticmethod
    def sepia(img: Image.Image) -> Image.Image:
        rgb, alpha = ProcessingService._split_alpha(img)
        mat = ProcessingService._to_matrix(rgb)
        out = np.clip(mat @ _SEPIA.T, 0.0, 1.0)
        return ProcessingService._from_matrix(out, alpha)

    # Pixelate: block size is `amount` percent of the shorter side
    @staticmethod
    def pixelate(img: Image.Image, amount: int) -> Image.Image:
        if amount <= 0:
            return img
        block = max(1, round(min(img.size) * amount / 100))
        small = (max(1, img.width // block), max(1, img.height // block))
        return img.resize(small, Image.Resampling.BOX).resize(img.size, Image.Resampling.NEAREST)

    @staticmethod
    def sharpen(img: Image.Image, amount: int) -> Image.Image:
        if amount <= 0:
            return img
        return img.filter(ImageFilter.UnsharpMask(radius=2, percent=amount * 3, threshold=2))

    # --------- helpers ---------
    @staticmethod
    def _split_alpha(img: Image.Image) -> tuple[Image.Image, Image.Image | None]:
        if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
            rgba = img.convert("RGBA")
            return rgba.convert("RGB"), rgba.getchannel("A")
        return img.convert("RGB"), None

    @staticmethod
    def _to_matrix(img: Image.Image) -> np.ndarray:
        return np.asarray(img).astype(np.float32) / 255.0

    @staticmethod
    def _from_matrix(matrix: np.ndarray, alpha: Image.Image | None) -> Image.Image:
        arr = (np.clip(matrix, 0.0, 1.0) * 255.0).round().astype("uint8")
        out = Image.fromarray(arr)
        if alpha is not None:
            out.putalpha(alpha)
        return out
