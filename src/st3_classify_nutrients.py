import numpy as np
import pandas as pd

from st0_config import (cfg, NUTRIENTS, SOURCE, SINK_DEFICIT, SINK_FERTILIZER, EXCLUDED,
                        within_label, validate_nutrient, validate_efficiency,
                        validate_columns)
from st1_cropland_threshold import get_cropland_threshold
from st2_process_nugis import process_nugis


def required_balance_columns(nutrient):
    p = validate_nutrient(nutrient)
    cols = [f'manure_{p}', f'fertilizer_{p}', f'crop_removal_{p}', 'cropland_area']
    if p == 'N':
        cols.append('n_fixation')
    return cols


def crop_demand(data, nutrient):
    '''Crop removal net of fixation (fixation applies to nitrogen only).'''
    p = validate_nutrient(nutrient)
    if p == 'N':
        return data['crop_removal_N'] - data['n_fixation']
    return data[f'crop_removal_{p}']


def _available_manure(data, nutrient, efficiency, point_load):
    # point-source load joins manure before the factor for N, after it for P
    p = validate_nutrient(nutrient)
    manure = data[f'manure_{p}']
    if p == 'N':
        return efficiency * (manure + point_load)
    return efficiency * manure + point_load


def _available_total(data, nutrient, efficiency, point_load):
    p = validate_nutrient(nutrient)
    manure = data[f'manure_{p}']
    fertilizer = data[f'fertilizer_{p}']
    if p == 'N':
        return efficiency * (manure + point_load + fertilizer)
    return efficiency * (manure + fertilizer) + point_load


def nutrient_surplus(data, nutrient, efficiency, point_load=0):
    '''
    Signed balance of available manure (plus any point-source load)
    against crop demand.
    '''
    return _available_manure(data, nutrient, efficiency, point_load) - crop_demand(data, nutrient)


def balance_rules(data, nutrient, cropland_threshold, efficiency, point_load=0):
    '''
    Ordered (category, mask) pairs; the first matching rule wins.

    Order is Excluded > Source > Sink_Deficit > Sink_Fertilizer, anything
    left over is the scale's Within category.
    '''
    demand = crop_demand(data, nutrient)
    fertilizer = data[f'fertilizer_{validate_nutrient(nutrient)}']

    surplus = _available_manure(data, nutrient, efficiency, point_load) - demand
    total_balance = _available_total(data, nutrient, efficiency, point_load) - demand
    fertilizer_balance = efficiency * fertilizer - demand

    return [
        (EXCLUDED, data['cropland_area'] < cropland_threshold),
        (SOURCE, surplus > 0),
        (SINK_DEFICIT, total_balance < 0),
        (SINK_FERTILIZER, fertilizer_balance > 0),
    ]


def assign_categories(rules, default, index):
    labels = [label for label, _ in rules]
    masks = [np.asarray(mask, dtype=bool) for _, mask in rules]
    return pd.Series(np.select(masks, labels, default=default), index=index, dtype=object)


def category_counts(data, class_col):
    return data[class_col].value_counts().sort_index()


def print_category_summary(data, class_col, title):
    print(f'{title}:')
    for label, count in category_counts(data, class_col).items():
        print(f'  {label}: {count} units')


def classify_nutrient(data, nutrient, cropland_threshold, scale='huc8',
                      efficiency=None, scales=None, verbose=True):
    '''
    Add <X>_surplus and <X>_class for one nutrient; returns a new table.
    '''
    p = validate_nutrient(nutrient)
    default_eff = NUTRIENTS[nutrient]['default_efficiency']
    efficiency = default_eff if efficiency is None else efficiency
    efficiency = validate_efficiency(efficiency, nutrient)
    validate_columns(data, required_balance_columns(nutrient), f'{nutrient} balance data')

    if verbose and efficiency != default_eff:
        print(f'Using custom {nutrient} efficiency factor: {efficiency}')
        print(f'  Standard factor is {default_eff}')

    classified = data.copy()
    classified[f'{p}_surplus'] = nutrient_surplus(classified, nutrient, efficiency)

    rules = balance_rules(classified, nutrient, cropland_threshold, efficiency)
    classified[f'{p}_class'] = assign_categories(
        rules, within_label(scale, scales), classified.index
    )

    if verbose:
        print_category_summary(
            classified, f'{p}_class',
            f'{nutrient.capitalize()} classification summary (efficiency = {efficiency})'
        )

    return classified


def classify_nitrogen(data, cropland_threshold, scale='huc8',
                      n_efficiency=cfg.n_efficiency, scales=None, verbose=True):
    return classify_nutrient(data, 'nitrogen', cropland_threshold, scale,
                             n_efficiency, scales, verbose)


def classify_phosphorus(data, cropland_threshold, scale='huc8',
                        p_efficiency=cfg.p_efficiency, scales=None, verbose=True):
    return classify_nutrient(data, 'phosphorus', cropland_threshold, scale,
                             p_efficiency, scales, verbose)


def classify_complete(nugis_data, scale, cropland_threshold=None, county_data=None,
                      n_efficiency=cfg.n_efficiency, p_efficiency=cfg.p_efficiency,
                      baseline_ha=cfg.baseline_ha, scales=None, verbose=True):
    '''
    Ingest raw NuGIS rows and classify both nutrients.

    When no threshold is supplied it is derived for the scale (county data
    is required for watershed scales). Returns (classified table, threshold).
    '''
    if verbose:
        print(f'Starting agricultural classification for {scale} scale...')

    processed = process_nugis(nugis_data, scale, scales=scales, verbose=verbose)

    if cropland_threshold is None:
        cropland_threshold = get_cropland_threshold(
            scale, county_data=county_data, target_data=processed,
            baseline_ha=baseline_ha, scales=scales, verbose=verbose
        )

    classified = classify_nitrogen(processed, cropland_threshold, scale,
                                   n_efficiency, scales, verbose)
    classified = classify_phosphorus(classified, cropland_threshold, scale,
                                     p_efficiency, scales, verbose)

    if verbose:
        print(f'Applied threshold: {cropland_threshold:.2f} acres')

    return classified, cropland_threshold
