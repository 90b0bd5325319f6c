import pandas as pd

from st0_config import cfg, get_scale_config, validate_columns

# raw NuGIS nutrient columns -> standardized SpatialUnit columns
NUGIS_COLUMNS = {
    'manure_N': 'manure_N',
    'manure_P2O5': 'manure_P',
    'fertilizer_N': 'fertilizer_N',
    'fertilizer_P2O5': 'fertilizer_P',
    'N_fixation': 'n_fixation',
    'crop_removal_N': 'crop_removal_N',
    'crop_removal_P2O5': 'crop_removal_P',
    'cropland': 'cropland_area',
}

OXIDE_COLUMNS = ['manure_P2O5', 'fertilizer_P2O5', 'crop_removal_P2O5']


def format_unit_ids(ids, width):
    '''
    Zero-pad spatial unit ids to a fixed width ('1001' -> '01001').
    Numeric ids read as floats lose their trailing '.0' first; missing ids
    stay missing (NaN or None, depending on the pandas version).
    '''
    def _fmt(v):
        if pd.isna(v):
            return None
        s = str(v).strip()
        if s.endswith('.0'):
            s = s[:-2]
        return s.zfill(width)

    return pd.Series(ids).map(_fmt)


def clean_text(text):
    '''Strip stray quoting and whitespace from name fields.'''
    text = pd.Series(text).astype('string')
    text = text.str.replace(r"^''\s*|\s*''$", '', regex=True)
    text = text.str.replace("'", '', regex=False)
    return text.str.strip()


def oxide_to_elemental_p(values):
    return values * cfg.p2o5_to_p


def process_nugis(nugis_data, scale, scales=None, verbose=True):
    '''
    Standardize raw NuGIS rows into the SpatialUnit table.

    P2O5 columns are converted to elemental P here, once; downstream
    classification expects the converted values.
    '''
    scale_cfg = get_scale_config(scale, scales)
    id_col = scale_cfg['id_column']
    name_col = scale_cfg['name_column']

    required = [id_col, name_col] + list(NUGIS_COLUMNS)
    validate_columns(nugis_data, required, f'{scale} NuGIS data')

    clean = pd.DataFrame({
        'id': format_unit_ids(nugis_data[id_col], scale_cfg['id_width']).to_numpy(),
        'name': clean_text(nugis_data[name_col]).to_numpy(),
    })

    for raw_col, std_col in NUGIS_COLUMNS.items():
        values = pd.to_numeric(nugis_data[raw_col], errors='coerce').to_numpy(dtype=float)
        if raw_col in OXIDE_COLUMNS:
            values = oxide_to_elemental_p(values)
        clean[std_col] = values

    # carry the year through when present
    for extra in ('year', 'Year'):
        if extra in nugis_data.columns:
            clean['year'] = nugis_data[extra].to_numpy()
            break

    if verbose:
        print(f'Processed NuGIS data for {scale} scale:')
        print(f'  Spatial units: {len(clean)}')
        print(f'  Converted P2O5 to P using factor: {cfg.p2o5_to_p}')

    return clean
