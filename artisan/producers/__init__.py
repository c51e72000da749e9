"""
Producers — profiles, admin approval and the follow graph.
"""

from artisan.producers._service import ProducerService, review_queue, approval_counts, filter_by_region
from artisan.producers._follow import FollowGraph

__all__ = ("ProducerService", "review_queue", "approval_counts", "filter_by_region", "FollowGraph")
