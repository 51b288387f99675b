import numpy as np
import pytest

from compositebayes import (
    BayesianClassifier,
    CompositeConfig,
    CompositeModel,
    Entry,
    EntryCollection,
    HashedNGramExtractor,
    InsufficientDataError,
    InvalidConfigurationError,
    ModelError,
    prediction_confidence,
    split_holdout,
)
from compositebayes.binning import bin_sizes
from compositebayes.segmentation import min_bin_size

def _calculated(entries, **cfg):
    model = CompositeModel(CompositeConfig(**cfg))
    model.extend(entries)
    return model.calculate()


# Test 1: bins cover every entry and the validation matrix adds up
def test_calculate_gap_data(gap_data):
    model = _calculated(gap_data)
    nbins = model.num_bins
    assert nbins == len(model.segments) + 1
    assert model.model_count == nbins

    sizes = model.bin_sizes()
    assert sizes.sum() == len(gap_data)
    assert sizes.min() >= min_bin_size(model.config.min_bin_fraction, len(gap_data))

    matrix = model.validation_matrix_
    assert matrix.shape == (nbins, nbins)
    assert list(matrix.sum(axis=1)) == list(sizes)
    assert matrix.sum() == len(gap_data)


# Test 2: boundaries carry the observed extremes
def test_boundaries(gap_data):
    model = _calculated(gap_data)
    bound = model.boundaries
    assert bound[0] == 1.0 and bound[-1] == 20.0
    assert bound.size == model.num_bins + 1
    assert list(bound[1:-1]) == list(model.segments)


# Test 3: held-out validation uses the same bookkeeping
def test_validate_matches_training_matrix(gap_data):
    model = _calculated(gap_data)
    assert np.array_equal(model.validate(gap_data), model.validation_matrix_)
    table = model.off_by_n()
    assert table["count"].sum() == len(gap_data)
    assert table["portion"].iloc[-1] == pytest.approx(1.0)


def test_supplied_segments(gap_data):
    model = CompositeModel()
    model.extend(gap_data)
    model.segments = [3.5, 10.5]
    model.calculate()
    assert model.segments == (3.5, 10.5)
    assert model.search_ is None
    assert list(model.bin_sizes()) == [3, 2, 5]


def test_determine_segments_before_calculate(gap_data):
    model = CompositeModel()
    model.extend(gap_data)
    seg = model.determine_segments()
    assert model.segments == seg
    model.calculate()
    assert model.segments == seg


def test_multi_mode_model(modal_data):
    model = _calculated(modal_data, cluster_subsize=30, max_candidates=10, max_bins=5)
    sizes = model.bin_sizes()
    assert sizes.min() >= min_bin_size(0.05, len(modal_data))
    assert list(model.validation_matrix_.sum(axis=1)) == list(sizes)
    assert 2 <= model.num_bins <= 5


# Scenario B
def test_too_few_entries():
    model = CompositeModel()
    model.add_entry((1, 2), 1.0)
    model.add_entry((3, 4), 2.0)
    with pytest.raises(InsufficientDataError):
        model.calculate()


def test_no_entries():
    with pytest.raises(InsufficientDataError):
        CompositeModel().calculate()


# Scenario C
def test_too_many_segments():
    model = CompositeModel()
    for i in range(5):
        model.add_entry((i,), float(i))
    model.segments = [0.5, 1.5, 2.5, 3.5]
    with pytest.raises(InvalidConfigurationError):
        model.calculate()


def test_segments_leaving_an_empty_bin(gap_data):
    model = CompositeModel()
    model.extend(gap_data)
    model.segments = [10.0, 12.0]
    with pytest.raises(InvalidConfigurationError) as exc:
        model.calculate()
    assert isinstance(exc.value, ModelError)


def test_unsorted_segments_refused():
    with pytest.raises(InvalidConfigurationError):
        CompositeModel().segments = [4.0, 2.0]


def test_prediction_scores(gap_data):
    model = _calculated(gap_data)
    low = model.predict_bins((1, 2, 3))
    high = model.predict_bins((4, 5, 6))
    assert low.shape == (model.num_bins,)
    assert int(np.argmax(low)) == 0
    assert int(np.argmax(low)) < int(np.argmax(high))


def test_predict_summary_and_frame(gap_data):
    model = _calculated(gap_data)
    summary = model.predict_summary((4, 5, 6))
    assert 0.0 <= summary.confidence <= 1.0
    assert summary.best_bin == int(np.argmax(summary.scores))
    assert (summary.low, summary.high) == model.bin_range(summary.best_bin)
    assert summary.low < summary.high <= 20.0

    frame = model.predict_frame([(1, 2, 3), (4, 5, 6)])
    assert len(frame) == 2
    assert list(frame.columns[-4:]) == ["best_bin", "confidence", "range_low", "range_high"]
    assert frame["best_bin"].iloc[0] == 0


def test_prediction_confidence():
    best, conf = prediction_confidence([0.2, 0.9, -0.5, 1.4])
    assert best == 3
    assert conf == pytest.approx(1.0 / 2.1)
    assert prediction_confidence([0.0, 0.0]) == (0, 0.0)
    assert prediction_confidence([-1.0, -2.0]) == (0, 0.0)
    assert prediction_confidence([0.0, 0.8, 0.0])[1] == pytest.approx(0.8)


def test_predict_before_calculate():
    with pytest.raises(RuntimeError):
        CompositeModel().predict_bins((1,))


# Reconstruction round trip
def test_from_boundaries_round_trip(gap_data):
    model = _calculated(gap_data)
    bound = model.boundaries
    rebuilt = CompositeModel.from_boundaries(bound, model.models_)
    assert np.array_equal(rebuilt.boundaries, bound)
    assert rebuilt.segments == model.segments
    assert np.allclose(rebuilt.predict_bins((4, 5, 6)), model.predict_bins((4, 5, 6)))


def test_from_boundaries_length_mismatch(gap_data):
    model = _calculated(gap_data)
    with pytest.raises(InvalidConfigurationError):
        CompositeModel.from_boundaries(model.boundaries[:-1], model.models_)
    with pytest.raises(InvalidConfigurationError):
        CompositeModel.from_boundaries([0.0, 1.0, 2.0], model.models_[:2])


def test_from_boundaries_type_mismatch(gap_data):
    model = _calculated(gap_data)
    models = list(model.models_)
    models[0] = object()
    with pytest.raises(InvalidConfigurationError):
        CompositeModel.from_boundaries(model.boundaries, models)


def test_from_boundaries_feature_kind_mismatch(gap_data):
    model = _calculated(gap_data)
    with pytest.raises(InvalidConfigurationError):
        CompositeModel.from_boundaries(model.boundaries, model.models_,
                                       extractor=HashedNGramExtractor(3))


def test_bin_count_clamps():
    model = CompositeModel()
    model.min_bins = 1
    model.max_bins = 50
    assert (model.min_bins, model.max_bins) == (3, 20)
    model.set_num_bins(5)
    assert (model.min_bins, model.max_bins) == (5, 5)


def test_config_params():
    cfg = CompositeConfig(min_bins=0, max_bins=99)
    assert (cfg.min_bins, cfg.max_bins) == (3, 20)
    cfg.set_params(min_roc_split=0.6)
    assert cfg.get_params()["min_roc_split"] == 0.6
    with pytest.raises(InvalidConfigurationError):
        cfg.set_params(bogus=1)
    with pytest.raises(InvalidConfigurationError):
        CompositeConfig(min_bin_fraction=0.7)


def test_raw_samples_with_extractor():
    extractor = HashedNGramExtractor(n=2)
    model = CompositeModel(extractor=extractor)
    words = ["aaab", "aaac", "aaad", "aaae", "abab", "mmmn", "mmmo", "mmnm",
             "xyzz", "xyzy", "zzxy", "zyzx"]
    for i, w in enumerate(words):
        model.add_sample(w, float(i))
    model.segments = [4.5, 7.5]
    model.calculate()
    scores = model.predict_sample("aaaf")
    assert scores.shape == (3,)
    assert int(np.argmax(scores)) == 0
    assert all(m.feature_kind == extractor.kind for m in model.models_)
    rebuilt = CompositeModel.from_boundaries(model.boundaries, model.models_, extractor=extractor)
    assert np.allclose(rebuilt.predict_sample("aaaf"), scores)


def test_extractor_required_for_samples():
    with pytest.raises(RuntimeError):
        CompositeModel().add_sample("abc", 1.0)


def test_hashed_ngrams_are_stable():
    ex = HashedNGramExtractor(n=3)
    fp = ex.extract("hello")
    assert fp == ex.extract("hello")
    assert list(fp) == sorted(set(fp))
    assert all(-(1 << 31) <= f < (1 << 31) for f in fp)
    with pytest.raises(TypeError):
        ex.extract(42)


def test_split_holdout():
    entries = [Entry((i,), float(i)) for i in range(20)]
    training, testing = split_holdout(entries, 0.25)
    assert len(testing) == 5 and len(training) == 15
    assert sorted(e.value for e in training + testing) == [e.value for e in entries]

    training, testing = split_holdout(entries[:12], 0.5)
    assert len(training) == 10 and len(testing) == 2


def test_entries_snapshot_is_immutable(gap_data):
    model = CompositeModel()
    model.extend(gap_data)
    snap = model.entries
    model.add_entry((1,), 99.0)
    assert len(snap) == len(gap_data)
    assert model.num_entries == len(gap_data) + 1
    with pytest.raises(Exception):
        snap[0].value = 3.0


def test_custom_classifier_type_is_used(gap_data):
    class Tagged(BayesianClassifier):
        pass

    model = CompositeModel(classifier_cls=Tagged)
    model.extend(gap_data)
    model.segments = [3.5, 10.5]
    model.calculate()
    assert all(isinstance(m, Tagged) for m in model.models_)


def test_entry_collection_builder():
    coll = EntryCollection()
    first = coll.add([3, 1, 3], 2)
    assert first.features == (1, 3) and first.value == 2.0
    coll.append(Entry((5,), 1.0))
    snap = coll.freeze()
    coll.clear()
    assert len(coll) == 0 and len(snap) == 2
    assert [e.value for e in snap] == [2.0, 1.0]


def test_supplied_segments_below_min_bins(gap_data):
    model = CompositeModel()
    model.extend(gap_data)
    model.segments = [10.5]
    with pytest.raises(InvalidConfigurationError):
        model.calculate()
    assert model.models_ is None


def test_supplied_segments_above_max_bins(gap_data):
    model = CompositeModel(CompositeConfig(max_bins=3))
    model.extend(gap_data)
    model.segments = [1.5, 2.5, 3.5, 10.5, 17.5]
    with pytest.raises(InvalidConfigurationError):
        model.calculate()


def test_supplied_segments_at_both_limits(gap_data):
    model = CompositeModel(CompositeConfig(max_bins=4))
    model.extend(gap_data)
    model.segments = [3.5, 10.5, 17.5]
    model.calculate()
    assert model.num_bins == 4
    rebuilt = CompositeModel.from_boundaries(model.boundaries, model.models_)
    assert np.array_equal(rebuilt.boundaries, model.boundaries)


def test_validate_held_out(modal_data):
    training, testing = split_holdout(modal_data, 0.2)
    model = _calculated(training, cluster_subsize=30, max_candidates=10, max_bins=5)
    matrix = model.validate(testing)
    assert matrix.shape == (model.num_bins, model.num_bins)
    assert matrix.sum() == len(testing)
    expected = bin_sizes(model.segments, [e.value for e in testing])
    assert list(matrix.sum(axis=1)) == list(expected)


def test_config_refuses_max_below_min():
    with pytest.raises(InvalidConfigurationError):
        CompositeConfig(max_bins=2)
    with pytest.raises(InvalidConfigurationError):
        CompositeConfig(min_bins=6, max_bins=5)
    cfg = CompositeConfig()
    with pytest.raises(InvalidConfigurationError):
        cfg.set_params(min_bins=10)
    # a refused change leaves the config as it was
    assert (cfg.min_bins, cfg.max_bins) == (3, 8)
    assert (cfg.set_num_bins(2).min_bins, cfg.max_bins) == (3, 3)


def test_computed_segments_follow_new_entries(gap_data):
    model = _calculated(gap_data)
    first = model.search_
    model.add_entry((4, 5, 6, 999), 21.0)
    assert model.segments is None and model.search_ is None
    model.calculate()
    assert model.search_ is not first
    assert model.bin_sizes().sum() == len(gap_data) + 1
    assert model.max_val == 21.0


def test_supplied_segments_survive_new_entries(gap_data):
    model = CompositeModel()
    model.extend(gap_data)
    model.segments = [3.5, 10.5]
    model.calculate()
    model.add_entry((4, 5, 6, 999), 21.0)
    assert model.segments == (3.5, 10.5)
    model.calculate()
    assert model.search_ is None
    assert list(model.bin_sizes()) == [3, 2, 6]
