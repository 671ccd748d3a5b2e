"""
Batch exposure processing.
"""

from .adjuster import ExposureAdjuster
from .report import BatchReport, ImageResult

__all__ = ['ExposureAdjuster', 'BatchReport', 'ImageResult']
