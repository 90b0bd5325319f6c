import numpy as np
import pandas as pd

from st0_config import (cfg, NUTRIENTS, EXCLUDED, get_scale_config, within_label,
                        validate_nutrient, validate_efficiency, validate_columns,
                        MissingDataError)
from st2_process_nugis import format_unit_ids
from st3_classify_nutrients import (required_balance_columns, nutrient_surplus,
                                    balance_rules, assign_categories,
                                    print_category_summary)

JOIN_KEY = '_unit_key'


def resolve_id_column(data, scale, scales=None, data_type='data'):
    '''
    Find the unit id column for a scale: 'id', then the scale's raw id
    column, then its boundary key.
    '''
    scale_cfg = get_scale_config(scale, scales)
    candidates = []
    for col in ('id', scale_cfg['id_column'], scale_cfg['boundary_id']):
        if col not in candidates:
            candidates.append(col)

    for col in candidates:
        if col in data.columns:
            return col

    raise MissingDataError(
        f'No suitable ID column found in {data_type}. '
        f'Inspected: {", ".join(candidates)}; '
        f'available: {", ".join(map(str, data.columns))}'
    )


def unit_keys(ids, width=None):
    '''
    Comparable join keys: ids as zero-padded strings, so 1009, 1009.0 and
    '01009' all meet on '01009'. Without a width ids are only stringified.
    '''
    if width is None:
        return pd.Series(ids).astype(str)
    return format_unit_ids(ids, width)


def _point_loads(wwtp_aggregated, key_col, load_col, width=None):
    # one row per unit so the left join can never duplicate classified rows
    loads = wwtp_aggregated[[key_col, load_col]].copy()
    if 'wwtp_count' in wwtp_aggregated.columns:
        loads['wwtp_count'] = wwtp_aggregated['wwtp_count'].to_numpy()
    else:
        loads['wwtp_count'] = 1

    loads[JOIN_KEY] = unit_keys(loads[key_col], width).to_numpy()
    return loads.drop(columns=[key_col]).groupby(JOIN_KEY, as_index=False).sum()


def integrate_wwtp_agricultural(agri_data, wwtp_aggregated, nutrient, cropland_threshold,
                                scale='huc8', efficiency=None, scales=None, verbose=True):
    '''
    Fold point-source loads into the classified table and reclassify.

    Adds wwtp_<X>_load, wwtp_count, combined_<X>_surplus, combined_<X>_class
    and wwtp_<X>_proportion. Every classified row is kept; units without a
    matching load get zero.
    '''
    p = validate_nutrient(nutrient)
    default_eff = NUTRIENTS[nutrient]['default_efficiency']
    efficiency = validate_efficiency(default_eff if efficiency is None else efficiency, nutrient)
    validate_columns(agri_data, required_balance_columns(nutrient), 'agricultural data')

    load_col = f'wwtp_{p}_load'
    if load_col not in wwtp_aggregated.columns:
        raise MissingDataError(f"Load column '{load_col}' not found in aggregated WWTP data")

    width = get_scale_config(scale, scales).get('id_width')
    agri_key = resolve_id_column(agri_data, scale, scales, 'agricultural data')
    wwtp_key = resolve_id_column(wwtp_aggregated, scale, scales, 'aggregated WWTP data')

    if verbose:
        print(f'Integrating WWTP {nutrient} data with agricultural classifications...')
        print(f'  Using ID columns: {agri_key} (agricultural), {wwtp_key} (WWTP)')

    # 1) left join on padded ids, zero-fill unmatched units
    integrated = agri_data.drop(columns=[load_col, 'wwtp_count'], errors='ignore').copy()
    integrated[JOIN_KEY] = unit_keys(integrated[agri_key], width).to_numpy()
    integrated = integrated.merge(
        _point_loads(wwtp_aggregated, wwtp_key, load_col, width),
        on=JOIN_KEY, how='left', validate='many_to_one'
    ).drop(columns=[JOIN_KEY])
    integrated.index = agri_data.index

    integrated[load_col] = integrated[load_col].fillna(0.0).astype(float)
    integrated['wwtp_count'] = integrated['wwtp_count'].fillna(0).astype(int)
    point_load = integrated[load_col]

    # 2) combined balance
    integrated[f'combined_{p}_surplus'] = nutrient_surplus(
        integrated, nutrient, efficiency, point_load=point_load
    )

    # 3) same ordered rules, now with the point-source load
    rules = balance_rules(integrated, nutrient, cropland_threshold, efficiency,
                          point_load=point_load)
    integrated[f'combined_{p}_class'] = assign_categories(
        rules, within_label(scale, scales), integrated.index
    )

    # 4) point-source share of manure + point-source load
    manure = integrated[f'manure_{p}']
    denom = (point_load + manure).to_numpy(dtype=float)
    share = np.zeros(len(integrated))
    np.divide(point_load.to_numpy(dtype=float), denom, out=share, where=denom > 0)
    integrated[f'wwtp_{p}_proportion'] = share

    if verbose:
        print_category_summary(integrated, f'combined_{p}_class',
                               f'Combined {nutrient} classification summary')

    return integrated


def integrate_complete(agri_data, wwtp_nitrogen_aggregated, wwtp_phosphorus_aggregated,
                       cropland_threshold, scale='huc8', n_efficiency=cfg.n_efficiency,
                       p_efficiency=cfg.p_efficiency, scales=None, verbose=True):
    '''Integrate both nutrients; returns {'nitrogen': ..., 'phosphorus': ...}.'''
    return {
        'nitrogen': integrate_wwtp_agricultural(
            agri_data, wwtp_nitrogen_aggregated, 'nitrogen', cropland_threshold,
            scale, n_efficiency, scales, verbose
        ),
        'phosphorus': integrate_wwtp_agricultural(
            agri_data, wwtp_phosphorus_aggregated, 'phosphorus', cropland_threshold,
            scale, p_efficiency, scales, verbose
        ),
    }


def classification_summary(data, agricultural_col, combined_col):
    '''
    Category counts before and after adding point sources (Excluded rows
    dropped), with absolute/percent change and impact ratio.
    '''
    validate_columns(data, [agricultural_col, combined_col], 'integrated data')

    keep = (data[agricultural_col].notna() & data[combined_col].notna()
            & (data[agricultural_col] != EXCLUDED) & (data[combined_col] != EXCLUDED))
    kept = data.loc[keep]

    agri_counts = kept[agricultural_col].value_counts()
    combined_counts = kept[combined_col].value_counts()
    categories = sorted(set(agri_counts.index) | set(combined_counts.index))

    summary = pd.DataFrame({
        'category': categories,
        'agricultural': agri_counts.reindex(categories, fill_value=0).to_numpy(),
        'combined': combined_counts.reindex(categories, fill_value=0).to_numpy(),
    })
    summary['absolute_change'] = summary['combined'] - summary['agricultural']

    before = summary['agricultural'].where(summary['agricultural'] > 0)
    summary['percent_change'] = summary['absolute_change'] / before * 100
    summary['impact_ratio'] = summary['combined'] / before

    return summary
