"""
Unit tests for RansacEngine: pool in, fused belief and best inlier set out.
"""
import dataclasses

import numpy as np
import pytest

from robustda.association import CorrespondencePool, RansacEngine
from robustda.association.engine import as_generator
from robustda.ransac import InsufficientDataError


class TestRansacEngine:
    """Tests for RansacEngine.run / run_detailed"""

    def test_consistent_pool_single_mode(self, rng, make_params, fusion_params, make_consistent_pool, true_pose):
        pool = make_consistent_pool(8, rng)
        engine = RansacEngine(make_params(min_iterations=50), fusion_params)

        report = engine.run_detailed(pool.full_set(), rng)

        assert len(report.belief) == 1
        mode = report.belief[0]
        assert mode.mean.distance_to(true_pose) < 1e-9
        assert mode.mean.angle_to(true_pose) < 1e-9
        assert sorted(report.best_inliers.pairs()) == [(i, i) for i in range(8)]
        assert report.iterations == 50
        assert report.num_accepted == 50
        assert mode.weight == pytest.approx(50 * 8)

    def test_outliers_are_rejected(self, rng, make_params, fusion_params, make_consistent_scene, true_pose):
        map_pts, obs, pairs = make_consistent_scene(10, rng, noise_std=0.05)
        map_out = rng.uniform(0.0, 20.0, size=(4, 2))
        obs_out = rng.uniform(-20.0, 0.0, size=(4, 2))
        all_map = np.vstack([map_pts, map_out])
        all_obs = np.vstack([obs, obs_out])
        pool = CorrespondencePool.from_pairs(all_map, all_obs, pairs + [(10 + k, 10 + k) for k in range(4)])

        params = make_params(noise_std=0.05, min_inliers=6, mahalanobis_threshold=4.0)
        belief, best = RansacEngine(params, fusion_params).run(pool.full_set(), rng)

        assert not belief.is_empty
        assert set(pairs) <= best.pair_key()
        assert len(best) >= 10
        winner = belief.best()
        assert winner.mean.distance_to(true_pose) < 0.2
        assert winner.mean.angle_to(true_pose) < 0.02

    def test_unrelated_pairs_give_empty_belief(self, rng, make_params, fusion_params):
        map_pts = rng.uniform(0.0, 50.0, size=(10, 2))
        obs = rng.uniform(0.0, 50.0, size=(10, 2))
        pool = CorrespondencePool.from_pairs(map_pts, obs, [(i, i) for i in range(10)])
        params = make_params(min_inliers=8, max_inliers=8, min_iterations=200)

        report = RansacEngine(params, fusion_params).run_detailed(pool.full_set(), rng)

        assert report.belief.is_empty
        assert len(report.best_inliers) == 0
        assert report.num_accepted == 0
        assert report.iterations == report.target_iterations == 200

    def test_too_small_pool_raises(self, rng, make_params, fusion_params):
        pool = CorrespondencePool.from_pairs(np.zeros((1, 2)), np.ones((1, 2)), [(0, 0)])
        with pytest.raises(InsufficientDataError):
            RansacEngine(make_params(), fusion_params).run(pool.full_set(), rng)

    def test_should_stop_ends_early(self, rng, make_params, fusion_params, make_consistent_pool):
        pool = make_consistent_pool(8, rng)
        engine = RansacEngine(make_params(min_iterations=500), fusion_params)

        report = engine.run_detailed(pool.full_set(), rng, should_stop=lambda it: it >= 10)

        assert report.stopped
        assert report.iterations == 10
        assert report.num_accepted == 10

    def test_should_stop_counts_pre_rejected_trials(self, rng, make_params, fusion_params):
        """On a cross-product pool most samples fail the distance check; the stop still lands on time"""
        map_pts = rng.uniform(0.0, 50.0, size=(100, 2))
        obs = rng.uniform(-5.0, 5.0, size=(10, 2))
        pool = CorrespondencePool.build(map_pts, obs)
        engine = RansacEngine(make_params(min_iterations=5000), fusion_params)
        seen = []

        def _stop(it):
            seen.append(it)
            return it >= 10

        report = engine.run_detailed(pool.full_set(), rng, should_stop=_stop)

        assert report.stopped
        assert report.iterations == 10
        assert seen == list(range(11))

    def test_params_cannot_be_swapped_after_construction(self, make_params, fusion_params):
        engine = RansacEngine(make_params(noise_std=0.1), fusion_params)
        with pytest.raises(dataclasses.FrozenInstanceError):
            engine.params = make_params(noise_std=0.5)
        assert engine.fitter.noise_std == 0.1

    def test_iteration_cap(self, rng, make_params, fusion_params, make_consistent_pool):
        pool = make_consistent_pool(8, rng)
        engine = RansacEngine(make_params(min_iterations=50), fusion_params)

        report = engine.run_detailed(pool.full_set(), rng, max_iterations=25)

        assert report.stopped
        assert report.iterations == 25

    def test_same_seed_same_result(self, make_params, fusion_params, make_consistent_scene):
        scene_rng = np.random.default_rng(7)
        map_pts, obs, pairs = make_consistent_scene(6, scene_rng, noise_std=0.05)
        pool = CorrespondencePool.build(map_pts, obs)
        engine = RansacEngine(make_params(noise_std=0.05, min_inliers=4, min_iterations=300), fusion_params)

        a = engine.run_detailed(pool.full_set(), 99)
        b = engine.run_detailed(pool.full_set(), 99)

        assert a.belief.summaries() == b.belief.summaries()
        assert a.best_inliers.pairs() == b.best_inliers.pairs()
        assert a.iterations == b.iterations

    def test_budget_never_below_floor(self, rng, make_params, fusion_params, make_consistent_scene):
        map_pts, obs, _ = make_consistent_scene(5, rng, noise_std=0.05)
        pool = CorrespondencePool.build(map_pts, obs)
        params = make_params(noise_std=0.05, min_inliers=4, min_iterations=120)

        report = RansacEngine(params, fusion_params).run_detailed(pool.full_set(), rng)

        assert not report.stopped
        assert report.iterations == report.target_iterations
        assert report.target_iterations >= 120


class TestAsGenerator:
    """Tests for as_generator"""

    def test_passes_generator_through(self, rng):
        assert as_generator(rng) is rng

    def test_int_seed(self):
        a = as_generator(5).integers(0, 1000, 10)
        b = as_generator(5).integers(0, 1000, 10)
        np.testing.assert_array_equal(a, b)

    @pytest.mark.parametrize("bad", [None, 1.5, True])
    def test_rejects_other_sources(self, bad):
        with pytest.raises(TypeError):
            as_generator(bad)
