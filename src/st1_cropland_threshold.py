import numpy as np
import pandas as pd

from st0_config import cfg, get_scale_config, MissingDataError


def county_threshold(baseline_ha=cfg.baseline_ha):
    '''County threshold is the baseline converted from hectares to acres.'''
    return baseline_ha * cfg.ha_to_acres


def calculate_cropland_threshold(county_cropland, target_cropland,
                                 baseline_ha=cfg.baseline_ha,
                                 verbose=True):
    '''
    Transfer the county baseline to another scale by percentile.

    The baseline acreage is located on the empirical CDF of county cropland,
    and the same percentile is read off the target-scale cropland distribution.
    Returns the threshold in acres.
    '''
    county = pd.Series(county_cropland, dtype=float).dropna()
    target = pd.Series(target_cropland, dtype=float).dropna()

    if county.empty:
        raise MissingDataError('County cropland values are required for threshold calculation')
    if target.empty:
        raise MissingDataError('Target-scale cropland values are required for threshold calculation')

    # 1) baseline in acres
    baseline_acres = county_threshold(baseline_ha)

    # 2) percentile of baseline within county data (ecdf: share of values <= x)
    percentile = float(np.mean(county.to_numpy() <= baseline_acres))

    # 3) same percentile in target data (linear interpolation between order stats)
    threshold = float(target.quantile(percentile))

    if verbose:
        print('Calculated cropland threshold:')
        print(f'  County baseline: {baseline_ha} ha ({baseline_acres:.2f} acres)')
        print(f'  Percentile in county data: {percentile * 100:.2f}%')
        print(f'  Threshold for target scale: {threshold:.2f} acres')

    return threshold


def _cropland_column(data, label):
    for col in ('cropland_area', 'cropland'):
        if col in data.columns:
            return data[col]
    raise MissingDataError(f'No cropland column (cropland_area/cropland) in {label} data')


def get_cropland_threshold(scale, county_data=None, target_data=None,
                           baseline_ha=cfg.baseline_ha, scales=None,
                           verbose=True):
    '''
    Cropland exclusion threshold (acres) for a scale.
    County scale needs no data; other scales need county and target tables.
    '''
    scale_cfg = get_scale_config(scale, scales)

    if scale_cfg['scope_label'] == 'County':
        threshold = county_threshold(baseline_ha)
        if verbose:
            print(f'Using county baseline threshold: {threshold:.2f} acres')
        return threshold

    if county_data is None or target_data is None:
        missing = [n for n, d in (('county', county_data), ('target', target_data)) if d is None]
        raise MissingDataError(
            f'County and target data required for {scale} threshold calculation '
            f'(missing: {", ".join(missing)})'
        )

    return calculate_cropland_threshold(
        _cropland_column(county_data, 'county'),
        _cropland_column(target_data, 'target'),
        baseline_ha=baseline_ha,
        verbose=verbose
    )
