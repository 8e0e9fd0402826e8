import math
import textwrap

from PIL import Image, ImageDraw, ImageFilter, ImageFont

UPSCALE_FACTOR = 4
CROP_PADDING = 20
DARK_LUMINANCE = 100
DARK_TOLERANCE = 70
LIGHT_TOLERANCE = 45
SHARPEN_KERNEL = (0, -1, 0, -1, 5, -1, 0, -1, 0)

# Print-file canvas for text-only designs (15x18in at 300dpi).
TEXT_CANVAS = (4500, 5400)


class NoContentError(ValueError):
    """Nothing opaque left in the image to crop to."""


def sample_points(width: int, height: int) -> list[tuple[int, int]]:
    """Four corners and four edge midpoints."""
    x1, y1 = width - 1, height - 1
    mx, my = width // 2, height // 2
    return [(0, 0), (x1, 0), (0, y1), (x1, y1), (mx, 0), (mx, y1), (0, my), (x1, my)]


def estimate_background(img: Image.Image) -> tuple[int, int, int]:
    rgb = img.convert("RGB")
    samples = [rgb.getpixel(p) for p in sample_points(*rgb.size)]
    n = len(samples)
    return tuple(int(round(sum(s[i] for s in samples) / n)) for i in range(3))


def luminance(color: tuple[int, int, int]) -> float:
    r, g, b = color[:3]
    return 0.299 * r + 0.587 * g + 0.114 * b


def tolerance_for(background: tuple[int, int, int]) -> int:
    # dark backgrounds carry shadow gradients
    return DARK_TOLERANCE if luminance(background) < DARK_LUMINANCE else LIGHT_TOLERANCE


def remove_background(img: Image.Image, background=None, tolerance: int | None = None) -> Image.Image:
    """Make every pixel within ``tolerance`` (Euclidean RGB) of the background transparent."""
    rgba = img.convert("RGBA")
    bg = background or estimate_background(rgba)
    tol = tolerance if tolerance is not None else tolerance_for(bg)
    tol_sq = tol * tol
    br, bgc, bb = bg

    out = []
    for r, g, b, a in rgba.getdata():
        if (r - br) ** 2 + (g - bgc) ** 2 + (b - bb) ** 2 <= tol_sq:
            out.append((r, g, b, 0))
        else:
            out.append((r, g, b, a))
    result = Image.new("RGBA", rgba.size)
    result.putdata(out)
    return result


def autocrop(img: Image.Image, padding: int = CROP_PADDING) -> Image.Image:
    """Crop to the non-transparent bounding box plus ``padding`` pixels."""
    rgba = img.convert("RGBA")
    bbox = rgba.getchannel("A").getbbox()
    if bbox is None:
        raise NoContentError("No visible content left to crop")
    left, top, right, bottom = bbox
    box = (
        max(0, left - padding),
        max(0, top - padding),
        min(rgba.width, right + padding),
        min(rgba.height, bottom + padding),
    )
    return rgba.crop(box)


def _split_alpha(img: Image.Image):
    if img.mode == "RGBA":
        return img.convert("RGB"), img.getchannel("A")
    return img.convert("RGB"), None


def _merge_alpha(rgb: Image.Image, alpha) -> Image.Image:
    if alpha is None:
        return rgb
    out = rgb.convert("RGBA")
    out.putalpha(alpha)
    return out


def upscale_lanczos(img: Image.Image, factor: int = UPSCALE_FACTOR) -> Image.Image:
    size = (img.width * factor, img.height * factor)
    rgb, alpha = _split_alpha(img)
    rgb = rgb.resize(size, Image.LANCZOS).filter(ImageFilter.UnsharpMask(radius=2, percent=60, threshold=3))
    if alpha is not None:
        alpha = alpha.resize(size, Image.LANCZOS)
    return _merge_alpha(rgb, alpha)


def upscale_basic(img: Image.Image, factor: int = UPSCALE_FACTOR) -> Image.Image:
    size = (img.width * factor, img.height * factor)
    rgb, alpha = _split_alpha(img)
    rgb = rgb.resize(size, Image.BICUBIC).filter(ImageFilter.Kernel((3, 3), SHARPEN_KERNEL, scale=1))
    if alpha is not None:
        alpha = alpha.resize(size, Image.BICUBIC)
    return _merge_alpha(rgb, alpha)


def upscale(img: Image.Image, factor: int = UPSCALE_FACTOR, backend: str = "lanczos") -> tuple[Image.Image, str]:
    """Returns the resized image and the backend that produced it."""
    if backend == "lanczos":
        try:
            return upscale_lanczos(img, factor), "lanczos"
        except (ValueError, OSError, MemoryError):
            pass
    return upscale_basic(img, factor), "basic"


def _load_font(size: int):
    try:
        return ImageFont.truetype("DejaVuSans-Bold.ttf", size)
    except OSError:
        return ImageFont.load_default(size=size)


def render_text_design(text: str, size=TEXT_CANVAS, color=(255, 255, 255, 255),
                       highlight_word: str | None = None, highlight_color=None) -> Image.Image:
    """Render a slogan centered on a transparent print canvas."""
    width, height = size
    canvas = Image.new("RGBA", size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(canvas)
    text = " ".join((text or "").split()) or " "

    chars_per_line = max(8, int(math.sqrt(len(text)) * 2.2))
    lines = textwrap.wrap(text, width=chars_per_line) or [text]
    font_size = int(min(width * 0.9 / max(len(line) for line in lines) * 1.8, height * 0.6 / len(lines)))
    font = _load_font(max(24, font_size))

    line_boxes = [draw.textbbox((0, 0), line, font=font) for line in lines]
    line_h = max(b[3] - b[1] for b in line_boxes)
    gap = int(line_h * 0.25)
    total_h = len(lines) * line_h + (len(lines) - 1) * gap
    y = (height - total_h) // 2
    hl = (highlight_word or "").strip().lower()

    for line, box in zip(lines, line_boxes):
        x = (width - (box[2] - box[0])) // 2
        if hl and highlight_color:
            for word in line.split(" "):
                fill = highlight_color if word.strip(".,!?").lower() == hl else color
                draw.text((x, y), word, font=font, fill=fill)
                x += draw.textlength(word + " ", font=font)
        else:
            draw.text((x, y), line, font=font, fill=color)
        y += line_h + gap
    return canvas


def parse_hex_color(value: str | None):
    v = (value or "").strip().lstrip("#")
    if len(v) != 6:
        return None
    try:
        return tuple(int(v[i:i + 2], 16) for i in (0, 2, 4)) + (255,)
    except ValueError:
        return None
