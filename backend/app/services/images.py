import os
import uuid
from io import BytesIO
from typing import Tuple

from PIL import Image, ExifTags, UnidentifiedImageError

from app.core.errors import ValidationError

SAMPLES_SUBDIR = "samples"


def fix_image_orientation(image: Image.Image) -> Image.Image:
    """Исправляет ориентацию изображения по EXIF данным"""
    exif = image.getexif()
    if not exif:
        return image

    orientation = None
    for tag, value in exif.items():
        if ExifTags.TAGS.get(tag) == "Orientation":
            orientation = value
            break

    if orientation == 3:
        image = image.rotate(180, expand=True)
    elif orientation == 6:
        image = image.rotate(270, expand=True)
    elif orientation == 8:
        image = image.rotate(90, expand=True)
    return image


def process_sample_image(content: bytes, max_size: int = 2000, quality: int = 85) -> Tuple[bytes, str]:
    """
    Готовит образец к показу клиенту:
    - исправляет ориентацию по EXIF
    - конвертирует в RGB/JPEG
    - уменьшает до max_size по большей стороне
    """
    try:
        image = Image.open(BytesIO(content))
        image.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise ValidationError("Uploaded file is not a valid image") from exc

    image = fix_image_orientation(image)

    if image.mode in ("RGBA", "LA", "P"):
        if image.mode == "P":
            image = image.convert("RGBA")
        # Прозрачность -> белый фон
        background = Image.new("RGB", image.size, (255, 255, 255))
        background.paste(image, mask=image.split()[-1])
        image = background
    elif image.mode != "RGB":
        image = image.convert("RGB")

    width, height = image.size
    if width > max_size or height > max_size:
        if width > height:
            new_size = (max_size, int(height * (max_size / width)))
        else:
            new_size = (int(width * (max_size / height)), max_size)
        image = image.resize(new_size, Image.Resampling.LANCZOS)

    output = BytesIO()
    image.save(output, format="JPEG", quality=quality, optimize=True)
    return output.getvalue(), ".jpg"


def save_sample_image(content: bytes, upload_dir: str) -> str:
    """Сохранить образец и вернуть его публичный URL"""
    processed, ext = process_sample_image(content)

    target_dir = os.path.join(upload_dir, SAMPLES_SUBDIR)
    os.makedirs(target_dir, exist_ok=True)

    filename = f"{uuid.uuid4().hex}{ext}"
    with open(os.path.join(target_dir, filename), "wb") as buffer:
        buffer.write(processed)

    return f"/uploads/{SAMPLES_SUBDIR}/{filename}"


def delete_sample_image(url: str, upload_dir: str) -> None:
    """Удалить файл образца по URL из save_sample_image"""
    filename = os.path.basename(url)
    path = os.path.join(upload_dir, SAMPLES_SUBDIR, filename)
    if os.path.exists(path):
        os.remove(path)
