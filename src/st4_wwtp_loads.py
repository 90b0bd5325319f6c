import geopandas as gpd
import numpy as np
import pandas as pd

from st0_config import cfg, validate_nutrient, validate_columns, MissingDataError

# candidate EPA column names for each standard field (first match wins)
WWTP_COLUMN_CANDIDATES = {
    'facility_name': ['Facility Name', 'Facility_Name', 'FACILITY_NAME', 'Plant_Name', 'name'],
    'npdes': ['NPDES Permit Number', 'NPDES_ID', 'NPDES', 'Permit_Number'],
    'state': ['State', 'STATE', 'State_Code'],
    'county': ['County', 'COUNTY', 'County_Name'],
    'latitude': ['Facility Latitude', 'Latitude', 'LAT', 'Lat', 'Facility_Latitude', 'latitude'],
    'longitude': ['Facility Longitude', 'Longitude', 'LON', 'Long', 'Facility_Longitude', 'longitude'],
    'pollutant_load': ['Pollutant Load (kg/yr)', 'Load_kg_yr', 'Annual_Load_kg',
                       'Load (kg/yr)', 'Pollutant_Load', 'load'],
    'load_unit': ['load_unit', 'Load_Unit', 'Units'],
}

ESSENTIAL_WWTP_FIELDS = ['facility_name', 'pollutant_load', 'latitude', 'longitude']

# load-size classes in tons/year
SOURCE_SIZE_BREAKS = {
    'nitrogen': [10, 50, 150, 1000],
    'phosphorus': [1, 5, 15, 100],
}
SOURCE_SIZE_LABELS = ['Minor Source', 'Small Source', 'Medium Source',
                      'Large Source', 'Very Large Source']

# divisor to get short tons from each unit
TONS_DIVISORS = {
    'kg': cfg.kg_per_ton,
    'lbs': cfg.lbs_per_ton,
    'pounds': cfg.lbs_per_ton,
    'tons': 1.0,
}


def _tons_divisor(unit):
    key = str(unit).strip().lower()
    if key not in TONS_DIVISORS:
        raise ValueError(
            f'Unsupported unit: {unit!r}. Supported units: {", ".join(TONS_DIVISORS)}'
        )
    return TONS_DIVISORS[key]


def convert_load_units(load_values, from_unit):
    '''Convert loads from kg, lbs/pounds or tons to short tons.'''
    return load_values / _tons_divisor(from_unit)


def convert_tons_to_units(load_values, to_unit):
    '''Inverse of convert_load_units.'''
    return load_values * _tons_divisor(to_unit)


def map_wwtp_columns(raw_data, custom_mapping=None):
    '''
    Map raw facility columns onto standard field names.

    Exact names are tried for every field first, then a case-insensitive
    partial match over the columns still unclaimed. The unit column is
    resolved before the load so 'Load Units' never passes for a load.
    '''
    if custom_mapping is not None:
        return dict(custom_mapping)

    col_names = list(raw_data.columns)
    mapping = {}

    # 1) exact names
    for std_name, candidates in WWTP_COLUMN_CANDIDATES.items():
        matched = next((c for c in candidates if c in col_names), None)
        if matched is not None and matched not in mapping.values():
            mapping[std_name] = matched

    # 2) partial matches, each raw column used once
    partial_order = sorted(WWTP_COLUMN_CANDIDATES, key=lambda f: f != 'load_unit')
    for std_name in partial_order:
        if std_name in mapping:
            continue
        free = [c for c in col_names if c not in mapping.values()]
        for cand in WWTP_COLUMN_CANDIDATES[std_name]:
            partial = [c for c in free if cand.lower() in str(c).lower()]
            if partial:
                mapping[std_name] = partial[0]
                break

    missing = [f for f in ESSENTIAL_WWTP_FIELDS if f not in mapping]
    if missing:
        raise MissingDataError(
            f'Could not find essential columns: {", ".join(missing)}\n'
            f'Available columns: {", ".join(map(str, col_names))}\n'
            'Provide custom_mapping for non-standard formats'
        )

    return mapping


def standardize_wwtp(raw_data, nutrient, column_mapping=None, load_units='kg',
                     verbose=True):
    '''
    Build the Facility table (facility_name, latitude, longitude, load_tons).

    A per-row load unit column, when mapped, overrides `load_units`.
    '''
    validate_nutrient(nutrient)
    mapping = map_wwtp_columns(raw_data, column_mapping)
    validate_columns(raw_data, [mapping[f] for f in ESSENTIAL_WWTP_FIELDS], 'WWTP data')

    facilities = pd.DataFrame({
        'facility_name': raw_data[mapping['facility_name']].astype('string').str.strip().to_numpy(),
        'latitude': pd.to_numeric(raw_data[mapping['latitude']], errors='coerce').to_numpy(),
        'longitude': pd.to_numeric(raw_data[mapping['longitude']], errors='coerce').to_numpy(),
    })
    for optional in ('npdes', 'state', 'county'):
        if optional in mapping:
            facilities[optional] = raw_data[mapping[optional]].to_numpy()

    loads = pd.to_numeric(raw_data[mapping['pollutant_load']], errors='coerce').to_numpy(dtype=float)

    if 'load_unit' in mapping:
        units = raw_data[mapping['load_unit']].fillna(load_units).to_numpy()
        divisors = np.array([_tons_divisor(u) for u in units], dtype=float)
        facilities['load_tons'] = loads / divisors
    else:
        facilities['load_tons'] = convert_load_units(loads, load_units)

    facilities['nutrient'] = nutrient

    if verbose:
        print(f'Standardized {len(facilities)} WWTP {nutrient} facilities (loads in tons/year)')

    return facilities


def clean_wwtp(facilities, verbose=True):
    '''
    Drop facilities that cannot be placed or carry no load:
    missing names or coordinates, zero coordinates, non-positive loads,
    points outside CONUS, and duplicate (name, lat, lon) records.
    '''
    validate_columns(facilities, ['facility_name', 'latitude', 'longitude', 'load_tons'],
                     'WWTP facility data')
    original_count = len(facilities)

    name = facilities['facility_name'].astype('string').str.strip()
    lat = facilities['latitude']
    lon = facilities['longitude']
    load = facilities['load_tons']

    # 1) essential fields present
    keep = name.notna() & (name != '') & (name != 'NA')
    keep &= lat.notna() & lon.notna() & (lat != 0) & (lon != 0)

    # 2) positive loads
    keep &= load.notna() & (load > 0)

    # 3) inside continental US
    keep &= lat.between(*cfg.conus_lat) & lon.between(*cfg.conus_lon)

    cleaned = facilities.loc[keep.fillna(False).astype(bool)].copy()

    # 4) remove duplicate facilities
    cleaned = cleaned.drop_duplicates(subset=['facility_name', 'latitude', 'longitude'])
    cleaned = cleaned.reset_index(drop=True)

    if verbose:
        print('Cleaning complete:')
        print(f'  Original facilities: {original_count}')
        print(f'  Removed: {original_count - len(cleaned)} (missing data, duplicates, or outside CONUS)')
        print(f'  Final facilities: {len(cleaned)}')

    return cleaned


def classify_wwtp_sources(facilities, nutrient, verbose=True):
    '''Label facilities by annual load size (tons/year).'''
    validate_nutrient(nutrient)
    validate_columns(facilities, ['load_tons'], 'WWTP facility data')

    breaks = [0] + SOURCE_SIZE_BREAKS[nutrient] + [np.inf]
    classified = facilities.copy()
    classified['source_class'] = pd.cut(
        classified['load_tons'],
        bins=breaks,
        labels=SOURCE_SIZE_LABELS,
        include_lowest=True
    )

    if verbose:
        print(f'WWTP {nutrient} source classification:')
        for label, count in classified['source_class'].value_counts(sort=False).items():
            print(f'  {label}: {count} facilities')

    return classified


def wwtp_to_points(facilities, crs=cfg.crs_wgs84, verbose=True):
    '''Facility table -> point GeoDataFrame (lon/lat in `crs`).'''
    validate_columns(facilities, ['latitude', 'longitude'], 'WWTP facility data')

    lat = facilities['latitude']
    lon = facilities['longitude']
    valid = lat.notna() & lon.notna() & (lat != 0) & (lon != 0)

    if not valid.any():
        raise MissingDataError('No valid coordinates found in WWTP data')

    if verbose and (~valid).sum() > 0:
        print(f'Removing {(~valid).sum()} facilities with invalid coordinates')

    located = facilities.loc[valid].reset_index(drop=True)
    points = gpd.GeoDataFrame(
        located,
        geometry=gpd.points_from_xy(located['longitude'], located['latitude']),
        crs=crs
    )

    if verbose:
        print(f'Created spatial WWTP data with {len(points)} facilities')

    return points
