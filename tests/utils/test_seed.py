import numpy as np

from iboot.utils import seed as seed_utils


def test_rng_factory_normalises_integer_seeds():
    value = seed_utils.MAX_SEED_VALUE + 5

    first = seed_utils.rng_factory(value).random()
    second = np.random.default_rng(5).random()

    assert first == second


def test_rng_factory_returns_existing_generator():
    rng = np.random.default_rng(1)

    assert seed_utils.rng_factory(rng) is rng


def test_rng_factory_accepts_seed_sequence():
    sequence = np.random.SeedSequence(42)

    assert seed_utils.rng_factory(sequence).integers(1000) == np.random.default_rng(
        np.random.SeedSequence(42)
    ).integers(1000)


def test_spawned_generators_are_reproducible_and_distinct():
    first = [g.random() for g in seed_utils.spawn_generators(np.random.default_rng(9), 4)]
    second = [g.random() for g in seed_utils.spawn_generators(np.random.default_rng(9), 4)]

    assert first == second
    assert len(set(first)) == 4


def test_spawn_advances_parent_stream():
    rng = np.random.default_rng(3)
    seed_utils.spawn_generators(rng, 2)
    after_first = [g.random() for g in seed_utils.spawn_generators(rng, 2)]

    fresh = [g.random() for g in seed_utils.spawn_generators(np.random.default_rng(3), 2)]

    assert after_first != fresh
