# Controllers Package
"""
Pipeline orchestration.
"""

from homeguard.controllers.pipeline_coordinator import (
    PipelineCoordinator,
    PipelineOutcome,
    build_pipeline,
)

__all__ = ["PipelineCoordinator", "PipelineOutcome", "build_pipeline"]
