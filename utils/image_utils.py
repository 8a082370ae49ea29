"""
Image utility functions for preparing OCR uploads
"""
from PIL import Image, ExifTags, UnidentifiedImageError
from typing import Optional, Tuple
import io

# Pillow format name -> (file extension, content type)
UPLOAD_FORMATS = {
    'JPEG': ('jpg', 'image/jpeg'),
    'PNG': ('png', 'image/png'),
    'GIF': ('gif', 'image/gif'),
    'BMP': ('bmp', 'image/bmp'),
    'TIFF': ('tif', 'image/tiff'),
    'WEBP': ('webp', 'image/webp'),
}

ORIENTATION_TAG = next(tag for tag, name in ExifTags.TAGS.items() if name == 'Orientation')

def detect_format(image_bytes: bytes) -> Optional[str]:
    """
    Return the Pillow format name of the image, or None if it is not an image
    Pillow recognizes
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            return image.format
    except (UnidentifiedImageError, OSError):
        return None

def correct_orientation(image_bytes: bytes) -> Image.Image:
    """
    Correct image orientation based on EXIF data
    """
    image = Image.open(io.BytesIO(image_bytes))

    orientation = image.getexif().get(ORIENTATION_TAG)
    if orientation == 3:
        image = image.rotate(180, expand=True)
    elif orientation == 6:
        image = image.rotate(270, expand=True)
    elif orientation == 8:
        image = image.rotate(90, expand=True)

    return image

def resize_image(image: Image.Image, max_dimension: int = 2000) -> Image.Image:
    """
    Resize image if it's too large, maintaining aspect ratio
    """
    width, height = image.size

    if width <= max_dimension and height <= max_dimension:
        return image

    if width > height:
        new_width = max_dimension
        new_height = int(height * (max_dimension / width))
    else:
        new_height = max_dimension
        new_width = int(width * (max_dimension / height))

    return image.resize((new_width, new_height), Image.Resampling.LANCZOS)

def shrink_to_jpeg(image_bytes: bytes, max_bytes: int, max_dimension: int = 2000) -> bytes:
    """
    Re-encode an image as JPEG, halving its longest side until it fits in max_bytes.
    Gives up at 250px and returns the smallest encoding produced.
    """
    image = correct_orientation(image_bytes)
    if image.mode not in ('RGB', 'L'):
        image = image.convert('RGB')

    dimension = max_dimension
    while True:
        buffer = io.BytesIO()
        resize_image(image, max_dimension=dimension).save(buffer, format='JPEG', quality=85, optimize=True)
        encoded = buffer.getvalue()
        if len(encoded) <= max_bytes or dimension <= 250:
            return encoded
        dimension //= 2

def prepare_upload(image_bytes: bytes, max_bytes: int, fallback_name: str = 'receipt') -> Tuple[str, bytes, str]:
    """
    Build the (filename, content, content_type) triple for a multipart upload.
    The OCR provider infers the file type from the name, so the extension
    has to match the bytes.
    """
    image_format = detect_format(image_bytes)

    if image_format is not None and len(image_bytes) > max_bytes:
        return f'{fallback_name}.jpg', shrink_to_jpeg(image_bytes, max_bytes), 'image/jpeg'

    extension, content_type = UPLOAD_FORMATS.get(image_format, ('jpg', 'image/jpeg'))
    return f'{fallback_name}.{extension}', image_bytes, content_type
