import geopandas as gpd
import pandas as pd

from st0_config import (cfg, get_scale_config, validate_nutrient, validate_columns,
                        MissingDataError)
from st2_process_nugis import format_unit_ids


def aggregate_wwtp_by_boundaries(wwtp_points, boundaries, nutrient, boundary_id_col,
                                 load_col='load_tons', id_width=None, verbose=True):
    '''
    Sum facility loads and count facilities per boundary polygon.

    Returns one row per boundary id (id, wwtp_<X>_load, wwtp_count);
    polygons without facilities get zero load and zero count. With
    `id_width` the ids are zero-padded to match the classified table.
    '''
    p = validate_nutrient(nutrient)

    if boundary_id_col not in boundaries.columns:
        raise MissingDataError(
            f"Boundary ID column '{boundary_id_col}' not found in boundaries.\n"
            f'Available columns: {", ".join(map(str, boundaries.columns))}'
        )
    if load_col not in wwtp_points.columns:
        raise MissingDataError(f"Load column '{load_col}' not found in WWTP data")

    # keep both layers in the boundary CRS
    if wwtp_points.crs != boundaries.crs:
        wwtp_points = wwtp_points.to_crs(boundaries.crs)

    # 1) join facilities to polygons; points on an edge fall in no polygon
    facilities_units = gpd.sjoin(
        wwtp_points[[load_col, 'geometry']],
        boundaries[[boundary_id_col, 'geometry']],
        predicate='within',
        how='inner'
    ).drop(columns=['index_right'], errors='ignore')

    if verbose:
        print(f'Facilities assigned to a boundary: {len(facilities_units)} of {len(wwtp_points)}')

    # 2) total load and facility count per unit
    load_name = f'wwtp_{p}_load'
    per_unit = (
        facilities_units.groupby(boundary_id_col)
        .agg(**{load_name: (load_col, 'sum'), 'wwtp_count': (load_col, 'size')})
        .reset_index()
    )

    # 3) merge back to every polygon, zero-filling units without facilities
    aggregated = (
        pd.DataFrame({boundary_id_col: boundaries[boundary_id_col].drop_duplicates().to_numpy()})
        .merge(per_unit, on=boundary_id_col, how='left')
        .rename(columns={boundary_id_col: 'id'})
    )
    if id_width is not None:
        aggregated['id'] = format_unit_ids(aggregated['id'], id_width).to_numpy()
    aggregated[load_name] = aggregated[load_name].fillna(0.0).astype(float)
    aggregated['wwtp_count'] = aggregated['wwtp_count'].fillna(0).astype(int)

    if verbose:
        print('Aggregation complete:')
        print(f'  Spatial units with facilities: {(aggregated["wwtp_count"] > 0).sum()} of {len(aggregated)}')
        print(f'  Total {nutrient} load: {aggregated[load_name].sum():.2f} tons/year')

    return aggregated


def attach_boundaries(data, boundaries, scale, scales=None, verbose=True):
    '''
    Merge a classified table onto boundary polygons by unit id.
    Boundary keys are zero-padded to the scale's id width before joining.
    '''
    scale_cfg = get_scale_config(scale, scales)
    key = scale_cfg['boundary_id']

    validate_columns(data, ['id'], 'classified data')
    validate_columns(boundaries, [key, 'geometry'], f'{key} boundaries')

    polygons = boundaries[[key, 'geometry']].copy()
    polygons['id'] = format_unit_ids(polygons[key], scale_cfg['id_width']).to_numpy()
    polygons = polygons.drop(columns=[key])

    joined = polygons.merge(data, on='id', how='inner')
    joined = gpd.GeoDataFrame(joined, geometry='geometry', crs=boundaries.crs)

    if verbose:
        print(f'Units matched to boundaries: {len(joined)} of {len(data)}')

    return joined


def add_centroid_coordinates(spatial_data, crs=cfg.crs_wgs84):
    '''
    Polygon centroids as longitude/latitude columns; geometry dropped.
    Centroids are taken in the layer's own CRS, then reprojected.
    '''
    if spatial_data.crs is None:
        raise MissingDataError('Spatial data has no CRS; cannot compute centroid coordinates')

    centroids = spatial_data.geometry.centroid.to_crs(crs)

    coords = pd.DataFrame(spatial_data.drop(columns=spatial_data.geometry.name))
    coords['longitude'] = centroids.x.to_numpy()
    coords['latitude'] = centroids.y.to_numpy()

    return coords
