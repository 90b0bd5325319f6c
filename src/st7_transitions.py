import numpy as np
import pandas as pd

from st0_config import EXCLUDED, validate_columns


def transition_counts(codes, nx, ny, num_categories):
    '''
    Symmetric category-change counts over an implied row-major raster.

    Cell k (1-based) = (j - 1) * nx + i for i in [1, nx - 1], j in [1, ny - 1];
    each cell is compared with its right (k + 1) and below (k + nx) neighbours.
    '''
    counts = np.zeros((num_categories, num_categories), dtype=float)
    n = len(codes)

    for i in range(1, nx):
        for j in range(1, ny):
            index = (j - 1) * nx + i
            if index > n:
                continue
            current = codes[index - 1]

            for neighbour in (index + 1, index + nx):
                if neighbour > n:
                    continue
                other = codes[neighbour - 1]
                if other != current:
                    counts[current, other] += 1
                    counts[other, current] += 1

    return counts


def calculate_transition_probabilities(data, class_column,
                                       longitude_col='longitude',
                                       latitude_col='latitude'):
    '''
    Percentage transition matrix between categories of adjacent units.

    Adjacency is approximated: the filtered rows are read as a row-major raster
    whose width is the number of distinct longitudes and whose height is the
    number of distinct latitudes. This is not a polygon neighbour test and only
    holds where the row order resembles a grid.

    Excluded (and unlabelled) rows are dropped first. Rows are labelled by the
    sorted categories; each non-empty row sums to 100, rows with no recorded
    transitions stay zero.
    '''
    validate_columns(data, [class_column, longitude_col, latitude_col], 'transition input')

    keep = data[class_column].notna() & (data[class_column] != EXCLUDED)
    filtered = data.loc[keep]

    categories = sorted(filtered[class_column].astype(str).unique())
    codes = pd.Categorical(filtered[class_column].astype(str), categories=categories).codes

    nx = filtered[longitude_col].nunique()
    ny = filtered[latitude_col].nunique()

    counts = transition_counts(codes, nx, ny, len(categories))

    # row-normalise, leaving zero-sum rows untouched
    row_sums = counts.sum(axis=1, keepdims=True)
    probs = np.divide(counts, row_sums, out=np.zeros_like(counts), where=row_sums > 0)

    return pd.DataFrame(np.round(probs * 100, 2), index=categories, columns=categories)
