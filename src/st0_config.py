import math
from numbers import Real


class MissingDataError(ValueError):
    '''Raised when a required table or column is not available.'''


class Config:
    # CRS choices:
    crs_wgs84: str = 'EPSG:4326'

    # unit conversions
    ha_to_acres: float = 2.47105
    p2o5_to_p: float = 0.436
    kg_per_ton: float = 907.185 # short tons
    lbs_per_ton: float = 2000.0

    # classification defaults
    baseline_ha: float = 500
    n_efficiency: float = 0.5
    p_efficiency: float = 1.0

    # continental US bounding box for facility coordinates
    conus_lat = (24.5, 49.5)
    conus_lon = (-125.0, -66.0)

cfg = Config()

# category labels
SOURCE = 'Source'
SINK_DEFICIT = 'Sink_Deficit'
SINK_FERTILIZER = 'Sink_Fertilizer'
EXCLUDED = 'Excluded'

# per-scale column names and labels
SCALES = {
    'county': {
        'id_column': 'FIPS',
        'name_column': 'county',
        'boundary_id': 'FIPS',
        'id_width': 5,
        'scope_label': 'County',
    },
    'huc8': {
        'id_column': 'HUC_8',
        'name_column': 'HUC_NAME',
        'boundary_id': 'huc8',
        'id_width': 8,
        'scope_label': 'Watershed',
    },
    'huc2': {
        'id_column': 'HUC_2',
        'name_column': 'huc_name',
        'boundary_id': 'huc2',
        'id_width': 2,
        'scope_label': 'Watershed',
    },
}

NUTRIENTS = {
    'nitrogen': {'prefix': 'N', 'default_efficiency': cfg.n_efficiency},
    'phosphorus': {'prefix': 'P', 'default_efficiency': cfg.p_efficiency},
}


def get_scale_config(scale, scales=None):
    '''
    Return the column/label settings for a scale.
    A dict passed as `scale` is used as-is; `scales` overrides the default map.
    '''
    if isinstance(scale, dict):
        return scale

    scales = SCALES if scales is None else scales
    if scale not in scales:
        raise ValueError(f'Unsupported scale: {scale!r}. Expected one of: {", ".join(scales)}')
    return scales[scale]


def within_label(scale, scales=None):
    return f"Within_{get_scale_config(scale, scales)['scope_label']}"


def categories_for(scale, scales=None):
    '''The closed set of five category labels for a scale.'''
    return [SOURCE, SINK_DEFICIT, SINK_FERTILIZER, within_label(scale, scales), EXCLUDED]


def validate_nutrient(nutrient):
    if nutrient not in NUTRIENTS:
        raise ValueError("Nutrient must be 'nitrogen' or 'phosphorus'")
    return NUTRIENTS[nutrient]['prefix']


def validate_efficiency(efficiency, nutrient='nitrogen'):
    '''
    Efficiency factors must be a real number in [0, 1]; never clamped.
    '''
    if (isinstance(efficiency, bool) or not isinstance(efficiency, Real)
            or math.isnan(efficiency) or not 0 <= efficiency <= 1):
        raise ValueError(
            f'{nutrient.capitalize()} efficiency factor must be numeric between 0 and 1. '
            f'Provided: {efficiency!r}'
        )
    return float(efficiency)


def validate_columns(data, required_cols, data_type='data'):
    missing = [c for c in required_cols if c not in data.columns]
    if missing:
        raise MissingDataError(
            f'Missing required columns in {data_type}: {", ".join(missing)}'
        )
    return True
