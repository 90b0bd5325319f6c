import pandas as pd
import pytest


@pytest.fixture
def raw_county_nugis():
    # raw NuGIS county rows (P in P2O5, FIPS as numbers)
    return pd.DataFrame({
        'FIPS': [1001, 1003, 1005, 1007],
        'county': ["''Autauga''", 'Baldwin', "Barbour'", ' Bibb '],
        'Year': [2016] * 4,
        'manure_N': [1000.0, 1000.0, 0.0, 600.0],
        'manure_P2O5': [100.0, 50.0, 0.0, 200.0],
        'fertilizer_N': [0.0, 0.0, 500.0, 600.0],
        'fertilizer_P2O5': [0.0, 0.0, 300.0, 100.0],
        'N_fixation': [0.0, 0.0, 0.0, 0.0],
        'crop_removal_N': [400.0, 400.0, 1000.0, 400.0],
        'crop_removal_P2O5': [50.0, 100.0, 400.0, 250.0],
        'cropland': [2000.0, 500.0, 2000.0, 3000.0],
    })


@pytest.fixture
def units():
    # processed SpatialUnit rows, P already elemental
    return pd.DataFrame({
        'id': ['01001', '01003', '01005', '01007', '01009', '01011'],
        'name': ['Source', 'Small', 'Deficit', 'Fertilizer', 'Within', 'Zero'],
        'manure_N': [1000.0, 1000.0, 0.0, 0.0, 600.0, 800.0],
        'fertilizer_N': [0.0, 0.0, 500.0, 1000.0, 600.0, 0.0],
        'n_fixation': [0.0, 0.0, 0.0, 0.0, 0.0, 0.0],
        'crop_removal_N': [400.0, 400.0, 1000.0, 400.0, 400.0, 400.0],
        'manure_P': [50.0, 50.0, 0.0, 0.0, 30.0, 40.0],
        'fertilizer_P': [0.0, 0.0, 10.0, 60.0, 30.0, 0.0],
        'crop_removal_P': [40.0, 40.0, 40.0, 40.0, 40.0, 40.0],
        'cropland_area': [2000.0, 500.0, 2000.0, 2000.0, 2000.0, 500 * 2.47105],
    })


@pytest.fixture
def county_threshold_acres():
    return 500 * 2.47105
