import random
from collections import Counter

from cue_trainer.ct_models import ScheduleEntry, SessionConfig, TrainableItem
from cue_trainer.schedule_generator import ScheduleGenerator, generate_schedule


def items(**counts):
    return [TrainableItem(item_id=name, name=name.title(), session_repeat_count=n, audio_file=f"{name}.mp3")
            for name, n in counts.items()]


def test_fixed_break_places_cues_on_multiples():
    schedule = generate_schedule(items(shot=2, pivot=1), SessionConfig(10, 3, 3), random.Random(7))

    assert [e.offset_seconds for e in schedule] == [3.0, 6.0, 9.0]
    assert sorted(e.item_id for e in schedule) == ['pivot', 'shot', 'shot']


def test_first_break_beyond_duration_gives_empty_schedule():
    assert generate_schedule(items(shot=3), SessionConfig(5, 10, 10), random.Random(7)) == []


def test_inverted_break_window_uses_min_break():
    schedule = generate_schedule(items(shot=3), SessionConfig(100, 5, 1), random.Random(7))

    assert [e.offset_seconds for e in schedule] == [5.0, 10.0, 15.0]
    assert all(e.offset_seconds >= 0 for e in schedule)


def test_empty_items_gives_empty_schedule(rng):
    assert generate_schedule([], SessionConfig(60, 1, 5), rng) == []


def test_zero_repeat_count_contributes_nothing(rng):
    schedule = generate_schedule(items(shot=0, pivot=2), SessionConfig(600, 1, 2), rng)
    assert Counter(e.item_id for e in schedule) == {'pivot': 2}


def test_every_cue_fits_when_duration_is_generous(rng):
    selected = items(shot=4, pivot=3, crossover=5)
    schedule = generate_schedule(selected, SessionConfig(1000, 1, 2), rng)

    assert len(schedule) == 12
    assert Counter(e.item_id for e in schedule) == {'shot': 4, 'pivot': 3, 'crossover': 5}


def test_offsets_are_ordered_and_inside_duration():
    selected = items(shot=10, pivot=10, crossover=10)
    for seed in range(50):
        config = SessionConfig(60, 0.5, 6)
        schedule = generate_schedule(selected, config, random.Random(seed))

        offsets = [e.offset_seconds for e in schedule]
        assert offsets == sorted(offsets)
        assert all(0 <= o < config.duration_seconds for o in offsets)
        assert len(schedule) <= 30


def test_same_seed_same_schedule():
    selected = items(shot=5, pivot=5)
    config = SessionConfig(120, 2, 9)

    first = generate_schedule(selected, config, random.Random(99))
    second = generate_schedule(selected, config, random.Random(99))

    assert first == second
    assert repr(first) == repr(second)


def test_shuffle_is_uniform_over_orderings():
    generator = ScheduleGenerator()
    rng = random.Random(2024)
    pool = ['a', 'a', 'b', 'b']
    trials = 6000

    seen = Counter(tuple(generator.shuffle_items(pool, rng)) for _ in range(trials))

    # 4! / (2! * 2!) distinct orderings, each with probability 1/6
    assert len(seen) == 6
    for count in seen.values():
        assert abs(count - trials / 6) < 150


def test_shuffle_leaves_input_untouched(rng):
    pool = ['a', 'b', 'c']
    ScheduleGenerator().shuffle_items(pool, rng)
    assert pool == ['a', 'b', 'c']


def test_summary_and_description():
    generator = ScheduleGenerator()
    schedule = [ScheduleEntry('shot', 3.0), ScheduleEntry('pivot', 65.5), ScheduleEntry('shot', 70.0)]

    assert generator.get_schedule_summary(schedule) == {'shot': 2, 'pivot': 1}
    assert generator.describe_schedule(schedule, {'shot': 'Shot'}) == "00:03 Shot → 01:05 pivot → 01:10 Shot"
