"""
Orchestration of generation requests: async job polling, provider
fallback and batch coordination. The service and content modules are
imported directly since they depend on the provider adapters.
"""

from .poller import JobPoller, JobState, JobSubmission, job_state
from .fallback import ChainLink, FallbackChain
from .batch import BatchCoordinator, build_requests, build_scene_prompt

__all__ = [
    'JobPoller',
    'JobState',
    'JobSubmission',
    'job_state',
    'ChainLink',
    'FallbackChain',
    'BatchCoordinator',
    'build_requests',
    'build_scene_prompt',
]
