import math

import pandas as pd
import pytest

from st0_config import (cfg, SCALES, get_scale_config, within_label, categories_for,
                        validate_nutrient, validate_efficiency, validate_columns,
                        MissingDataError)


class TestScaleConfig:

    def test_known_scales(self):
        assert get_scale_config('county')['id_column'] == 'FIPS'
        assert get_scale_config('huc8')['boundary_id'] == 'huc8'
        assert get_scale_config('huc2')['id_width'] == 2

    def test_unknown_scale_is_rejected(self):
        with pytest.raises(ValueError, match='Unsupported scale'):
            get_scale_config('state')

    def test_custom_scale_map(self):
        custom = {'huc8': dict(SCALES['huc8'], id_column='HUC8_CODE')}
        assert get_scale_config('huc8', custom)['id_column'] == 'HUC8_CODE'
        with pytest.raises(ValueError):
            get_scale_config('county', custom)

    def test_scale_dict_passed_directly(self):
        entry = dict(SCALES['county'])
        assert get_scale_config(entry) is entry

    def test_within_labels(self):
        assert within_label('county') == 'Within_County'
        assert within_label('huc8') == 'Within_Watershed'
        assert within_label('huc2') == 'Within_Watershed'

    def test_five_categories(self):
        labels = categories_for('county')
        assert len(set(labels)) == 5
        assert 'Within_County' in labels and 'Excluded' in labels


class TestValidation:

    @pytest.mark.parametrize('value', [0, 0.0, 0.5, 1, 1.0])
    def test_efficiency_in_range(self, value):
        assert validate_efficiency(value) == float(value)

    @pytest.mark.parametrize('value', [-0.01, 1.01, 2, math.nan, True, '0.5', None])
    def test_efficiency_out_of_range(self, value):
        with pytest.raises(ValueError, match='efficiency factor'):
            validate_efficiency(value)

    def test_nutrient(self):
        assert validate_nutrient('nitrogen') == 'N'
        assert validate_nutrient('phosphorus') == 'P'
        with pytest.raises(ValueError):
            validate_nutrient('potassium')

    def test_validate_columns_names_missing(self):
        df = pd.DataFrame({'a': [1]})
        with pytest.raises(MissingDataError, match='b, c'):
            validate_columns(df, ['a', 'b', 'c'], 'test data')

    def test_missing_data_error_is_value_error(self):
        assert issubclass(MissingDataError, ValueError)

    def test_constants(self):
        assert cfg.p2o5_to_p == 0.436
        assert cfg.ha_to_acres == 2.47105
