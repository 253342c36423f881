#!/usr/bin/env python3
"""
Schedule Generator for Training Sessions
Turns the selected commands into a randomized, time-ordered cue schedule
"""

import logging
import random
from collections import Counter
from typing import Dict, Iterable, List, Optional

from .ct_models import ScheduleEntry, SessionConfig, TrainableItem

logger = logging.getLogger(__name__)


class ScheduleGenerator:
    """Generate randomized cue schedules for a training session"""

    def generate(
        self,
        items: Iterable[TrainableItem],
        config: SessionConfig,
        rng: Optional[random.Random] = None
    ) -> List[ScheduleEntry]:
        """
        Build the cue schedule for one session

        Args:
            items: Playable, selected items (caller already filtered out items without audio)
            config: Session duration and break-time window
            rng: Uniform random source; a fresh unseeded one is used when omitted

        Returns:
            Entries in firing order, offsets non-decreasing and all < duration
            Example: [
                ScheduleEntry(item_id='shot', offset_seconds=3.0),
                ScheduleEntry(item_id='pivot', offset_seconds=6.0),
                ScheduleEntry(item_id='shot', offset_seconds=9.0)
            ]
        """
        rng = rng or random.Random()

        pool = self.shuffle_items(self.expand_items(items), rng)
        low, width = config.break_window()

        schedule = []
        offset = 0.0
        for item_id in pool:
            offset += low + rng.random() * width
            # Offsets only grow, so nothing after the first overflow can be emitted
            if offset < config.duration_seconds:
                schedule.append(ScheduleEntry(item_id=item_id, offset_seconds=offset))

        logger.info(
            f"Schedule generated: {len(schedule)}/{len(pool)} cues within {config.duration_seconds}s"
        )
        return schedule

    def expand_items(self, items: Iterable[TrainableItem]) -> List[str]:
        """Repeat each item id session_repeat_count times"""
        pool = []
        for item in items:
            pool.extend([item.item_id] * max(0, item.session_repeat_count))
        return pool

    def shuffle_items(self, pool: List[str], rng: random.Random) -> List[str]:
        """
        Fisher-Yates shuffle driven by rng.random()

        Returns a shuffled copy; the input list is left untouched.
        """
        shuffled = list(pool)
        for i in range(len(shuffled) - 1, 0, -1):
            j = int(rng.random() * (i + 1))
            shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
        return shuffled

    def get_schedule_summary(self, schedule: List[ScheduleEntry]) -> Dict[str, int]:
        """Number of scheduled cues per item id"""
        return dict(Counter(entry.item_id for entry in schedule))

    def describe_schedule(self, schedule: List[ScheduleEntry], names: Optional[Dict[str, str]] = None) -> str:
        """
        Get human-readable schedule description

        Returns:
            String like "00:03 shot → 00:06 pivot → 00:09 shot"
        """
        names = names or {}
        parts = []
        for entry in schedule:
            mins, secs = divmod(int(entry.offset_seconds), 60)
            parts.append(f"{mins:02d}:{secs:02d} {names.get(entry.item_id, entry.item_id)}")
        return " → ".join(parts)


# Singleton instance
schedule_generator = ScheduleGenerator()


def generate_schedule(
    items: Iterable[TrainableItem],
    config: SessionConfig,
    rng: Optional[random.Random] = None
) -> List[ScheduleEntry]:
    return schedule_generator.generate(items, config, rng)
