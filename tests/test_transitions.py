import numpy as np
import pandas as pd
import pytest

from st0_config import MissingDataError
from st7_transitions import transition_counts, calculate_transition_probabilities


def raster(labels, nx):
    '''Row-major grid table with one distinct lon per column, lat per row.'''
    rows = []
    for k, label in enumerate(labels):
        j, i = divmod(k, nx)
        rows.append({'class': label, 'longitude': -100.0 + i, 'latitude': 40.0 - j})
    return pd.DataFrame(rows)


CHECKER = ['A', 'B', 'A',
           'B', 'A', 'B',
           'A', 'B', 'A']


def test_checkerboard():
    matrix = calculate_transition_probabilities(raster(CHECKER, 3), 'class')

    assert list(matrix.index) == ['A', 'B']
    assert list(matrix.columns) == ['A', 'B']
    assert matrix.loc['A', 'B'] == 100.0
    assert matrix.loc['B', 'A'] == 100.0
    assert matrix.loc['A', 'A'] == 0.0


def test_counts_are_symmetric():
    codes = np.array([0, 1, 0, 1, 0, 1, 0, 1, 0])
    counts = transition_counts(codes, 3, 3, 2)
    assert counts[0, 1] == 8
    np.testing.assert_array_equal(counts, counts.T)


def test_excluded_rows_removed():
    data = pd.concat([
        raster(CHECKER, 3),
        pd.DataFrame({'class': ['Excluded', 'Excluded'],
                      'longitude': [-50.0, -51.0], 'latitude': [10.0, 11.0]}),
    ], ignore_index=True)
    matrix = calculate_transition_probabilities(data, 'class')

    assert 'Excluded' not in matrix.index
    assert 'Excluded' not in matrix.columns
    assert matrix.loc['A', 'B'] == 100.0


def test_category_without_transitions_stays_zero():
    # the last cell is never a base index nor reached as a neighbour
    labels = CHECKER[:-1] + ['C']
    matrix = calculate_transition_probabilities(raster(labels, 3), 'class')

    assert list(matrix.index) == ['A', 'B', 'C']
    assert (matrix.loc['C'] == 0).all()
    assert (matrix['C'] == 0).all()
    assert matrix.loc['A'].sum() == pytest.approx(100.0)


def test_mixed_percentages():
    labels = ['Source', 'Sink_Deficit', 'Source',
              'Within_County', 'Source', 'Sink_Fertilizer',
              'Source', 'Source', 'Source']
    matrix = calculate_transition_probabilities(raster(labels, 3), 'class')

    # Source <-> Sink_Deficit 3x, <-> Within_County 3x, <-> Sink_Fertilizer once
    assert matrix.loc['Source', 'Sink_Deficit'] == pytest.approx(42.86)
    assert matrix.loc['Source', 'Within_County'] == pytest.approx(42.86)
    assert matrix.loc['Source', 'Sink_Fertilizer'] == pytest.approx(14.29)
    assert matrix.loc['Within_County', 'Source'] == pytest.approx(100.0)
    assert matrix.loc['Sink_Deficit', 'Source'] == pytest.approx(100.0)


def test_rows_sum_to_100():
    rng = np.random.default_rng(11)
    labels = rng.choice(['Source', 'Sink_Deficit', 'Sink_Fertilizer', 'Within_Watershed'],
                        size=7 * 6)
    matrix = calculate_transition_probabilities(raster(list(labels), 7), 'class')

    sums = matrix.sum(axis=1)
    for total in sums:
        assert total == pytest.approx(100.0, abs=0.1) or total == 0.0
    assert ((matrix >= 0) & (matrix <= 100)).all().all()


def test_labels_sorted():
    labels = ['Within_County', 'Source', 'Sink_Deficit', 'Source']
    matrix = calculate_transition_probabilities(raster(labels, 2), 'class')
    assert list(matrix.index) == sorted(set(labels))


def test_all_excluded_gives_empty_matrix():
    data = raster(['Excluded'] * 4, 2)
    matrix = calculate_transition_probabilities(data, 'class')
    assert matrix.shape == (0, 0)


def test_single_column_has_no_pairs():
    matrix = calculate_transition_probabilities(raster(['A', 'B', 'A'], 1), 'class')
    assert matrix.shape == (2, 2)
    assert (matrix.to_numpy() == 0).all()


def test_custom_coordinate_columns():
    data = raster(CHECKER, 3).rename(columns={'longitude': 'x', 'latitude': 'y'})
    matrix = calculate_transition_probabilities(data, 'class', longitude_col='x', latitude_col='y')
    assert matrix.loc['A', 'B'] == 100.0


def test_missing_columns():
    with pytest.raises(MissingDataError, match='latitude'):
        calculate_transition_probabilities(pd.DataFrame({'class': ['A'], 'longitude': [1.0]}),
                                           'class')
