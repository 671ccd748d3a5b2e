"""
Per-image outcome tracking for batch exposure operations.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import click

APPLIED = 'applied'
FAILED = 'failed'
SKIPPED = 'skipped'


@dataclass
class ImageResult:
    """Outcome for a single image."""
    image_path: str
    status: str
    old_exposure: Optional[float] = None
    new_exposure: Optional[float] = None
    delta: Optional[float] = None
    style_name: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None


@dataclass
class BatchReport:
    """Collects results of one batch action."""
    operation: str
    results: List[ImageResult] = field(default_factory=list)
    start_time: datetime = field(default_factory=datetime.now)

    def add_applied(self, image_path: str, old_exposure: float, new_exposure: float,
                    style_name: str) -> ImageResult:
        result = ImageResult(
            image_path=image_path,
            status=APPLIED,
            old_exposure=old_exposure,
            new_exposure=new_exposure,
            delta=new_exposure - old_exposure,
            style_name=style_name,
        )
        self.results.append(result)
        return result

    def add_failure(self, image_path: str, error: Exception) -> ImageResult:
        result = ImageResult(
            image_path=image_path,
            status=FAILED,
            error=str(error.args[0]) if error.args else str(error),
            error_type=type(error).__name__,
        )
        self.results.append(result)
        return result

    def add_skipped(self, image_path: str, reason: str) -> ImageResult:
        result = ImageResult(image_path=image_path, status=SKIPPED, error=reason)
        self.results.append(result)
        return result

    @property
    def succeeded(self) -> List[ImageResult]:
        return [r for r in self.results if r.status == APPLIED]

    @property
    def failed(self) -> List[ImageResult]:
        return [r for r in self.results if r.status == FAILED]

    @property
    def skipped(self) -> List[ImageResult]:
        return [r for r in self.results if r.status == SKIPPED]

    @property
    def ok(self) -> bool:
        return not self.failed

    def get_elapsed_time(self) -> float:
        """Get elapsed time in seconds"""
        return (datetime.now() - self.start_time).total_seconds()

    def get_summary(self) -> Dict[str, Any]:
        """Get batch summary"""
        failure_types: Dict[str, int] = {}
        for result in self.failed:
            failure_types[result.error_type] = failure_types.get(result.error_type, 0) + 1

        return {
            'operation': self.operation,
            'total_images': len(self.results),
            'applied': len(self.succeeded),
            'failed': len(self.failed),
            'skipped': len(self.skipped),
            'failure_types': failure_types,
            'elapsed_time': self.get_elapsed_time(),
        }

    def print_summary(self, echo: Callable[..., None] = click.echo):
        """Print the batch summary and every failure"""
        summary = self.get_summary()

        echo(f"{summary['operation']}: {summary['applied']} applied, "
             f"{summary['failed']} failed, {summary['skipped']} skipped")

        for result in self.succeeded:
            echo(f"  {result.image_path}: {result.old_exposure:+.2f} -> "
                 f"{result.new_exposure:+.2f} EV ({result.delta:+.2f})")

        if self.failed:
            echo("Failures:", err=True)
            for result in self.failed:
                echo(f"  {result.image_path}: [{result.error_type}] {result.error}", err=True)
