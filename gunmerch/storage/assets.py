from io import BytesIO
from pathlib import Path

from PIL import Image

THUMBNAIL_SIZES = {"thumbnail": 150, "medium": 300, "large": 1024}
IMAGE_FORMATS = {"PNG": ".png", "JPEG": ".jpg", "WEBP": ".webp"}


class AssetStore:
    """Design artwork on disk: ``<assets>/designs/<design_id>/<name>`` plus derived thumbs.

    Asset references are paths relative to the assets root so they survive a
    moved data directory.
    """

    def __init__(self, assets_dir: Path, public_base_url: str = ""):
        self.root = Path(assets_dir)
        self.root.mkdir(parents=True, exist_ok=True)
        self.public_base_url = (public_base_url or "").rstrip("/")

    def design_dir(self, design_id: int) -> Path:
        return self.root / "designs" / str(int(design_id))

    def path_for(self, asset_ref: str) -> Path:
        p = (self.root / asset_ref).resolve()
        if self.root.resolve() not in p.parents:
            raise ValueError(f"asset reference escapes the assets directory: {asset_ref}")
        return p

    def exists(self, asset_ref: str | None) -> bool:
        if not asset_ref:
            return False
        try:
            return self.path_for(asset_ref).is_file()
        except ValueError:
            return False

    def read_bytes(self, asset_ref: str) -> bytes:
        return self.path_for(asset_ref).read_bytes()

    def open_image(self, asset_ref: str) -> Image.Image:
        with Image.open(self.path_for(asset_ref)) as img:
            img.load()
            return img.copy()

    def save_bytes(self, design_id: int, data: bytes, *, stem: str = "design") -> str:
        """Persist raw image bytes; the extension follows the decoded format."""
        with Image.open(BytesIO(data)) as img:
            fmt = (img.format or "PNG").upper()
        if fmt not in IMAGE_FORMATS:
            return self.save_image(design_id, Image.open(BytesIO(data)), stem=stem)
        return self._write(design_id, data, stem + IMAGE_FORMATS[fmt])

    def save_image(self, design_id: int, img: Image.Image, *, stem: str = "design") -> str:
        """Persist a Pillow image as PNG (keeps transparency)."""
        buf = BytesIO()
        img.save(buf, format="PNG", optimize=True)
        return self._write(design_id, buf.getvalue(), stem + ".png")

    def _write(self, design_id: int, data: bytes, name: str) -> str:
        base = self.design_dir(design_id)
        base.mkdir(parents=True, exist_ok=True)
        for old in base.glob("design.*"):
            if old.name != name:
                old.unlink()
        out = base / name
        out.write_bytes(data)
        ref = out.relative_to(self.root).as_posix()
        self.regenerate_thumbnails(ref)
        return ref

    def regenerate_thumbnails(self, asset_ref: str) -> dict[str, str]:
        src = self.path_for(asset_ref)
        thumbs_dir = src.parent / "thumbs"
        thumbs_dir.mkdir(exist_ok=True)
        out = {}
        with Image.open(src) as img:
            img.load()
            for name, edge in THUMBNAIL_SIZES.items():
                thumb = img.convert("RGBA")
                thumb.thumbnail((edge, edge), Image.LANCZOS)
                target = thumbs_dir / f"{name}.png"
                thumb.save(target, "PNG")
                out[name] = target.relative_to(self.root).as_posix()
        return out

    def thumbnail_path(self, design_id: int, size: str) -> Path | None:
        if size not in THUMBNAIL_SIZES:
            return None
        p = self.design_dir(design_id) / "thumbs" / f"{size}.png"
        return p if p.is_file() else None

    def public_url(self, design_id: int) -> str:
        return f"{self.public_base_url}/designs/{int(design_id)}/asset"
