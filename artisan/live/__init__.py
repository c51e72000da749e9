"""
Live — producer-run live sessions.

    stream = await market.live.create({"title": "Weaving at dawn", "start_time": when})
    await market.live.start(stream.id)

    async for listing in market.live.watch(interval=30):
        ...
"""

from artisan.live._service import LiveService, ordered_for_display, count_by_status

__all__ = ("LiveService", "ordered_for_display", "count_by_status")
