"""
Image handle loading.
"""

from .images import Image, ImageLoader, image_from_tags

__all__ = ['Image', 'ImageLoader', 'image_from_tags']
