"""End-to-end runs of the mortality-tools command line."""

import io
import os
import tempfile
import unittest
from contextlib import redirect_stdout

import yaml

from mortality_package.cli import main

CSV_TEXT = """Year,Sex,Cause,State,Deaths,Population
2019,Female,Cancer,Alabama,100,1000
2019,Male,Heart,Alabama,80,1000
2020,Female,Cancer,Alaska,50,500
2020,Male,Stroke,Alaska,Suppressed,500
"""


class CliTests(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.tmp = tempfile.TemporaryDirectory()
        csv_path = os.path.join(cls.tmp.name, 'deaths.csv')
        with open(csv_path, 'w') as f:
            f.write(CSV_TEXT)
        config = {
            'engine': {'max_segments': 5, 'series_max_segments': 3, 'bucket_count': 2},
            'datasets': {
                'deaths': {
                    'locations': [csv_path],
                    'value': 'Deaths',
                    'period': 'Year',
                    'dimensions': {
                        'sex': {'field': 'Sex', 'label': 'Gender'},
                        'cause': {'field': 'Cause', 'other_label': 'All other causes'},
                        'state': {'field': 'State', 'collapsible': False},
                    },
                },
            },
        }
        cls.config_path = os.path.join(cls.tmp.name, 'datasets.yaml')
        with open(cls.config_path, 'w') as f:
            yaml.safe_dump(config, f)

        config['engine']['default_period'] = 2020
        cls.default_period_config_path = os.path.join(cls.tmp.name, 'default_period.yaml')
        with open(cls.default_period_config_path, 'w') as f:
            yaml.safe_dump(config, f)

    @classmethod
    def tearDownClass(cls):
        cls.tmp.cleanup()

    def run_cli(self, *args, config_path=None):
        out = io.StringIO()
        with redirect_stdout(out):
            status = main(['--config', config_path or self.config_path] + list(args))
        return status, out.getvalue().strip().splitlines()

    def test_fields(self):
        status, lines = self.run_cli('fields', '--dataset', 'deaths')
        self.assertEqual(status, 0)
        self.assertEqual(lines, ['Sex', 'Cause', 'State'])

    def test_tree(self):
        status, lines = self.run_cli('tree', '--dataset', 'deaths', '--dims', 'cause')
        self.assertEqual(status, 0)
        self.assertEqual(lines[0].split('\t'), ['path', 'depth', 'key', 'value', 'share', 'is_other'])
        self.assertEqual(len(lines), 4)
        self.assertTrue(lines[1].startswith('Total\t0\tTotal\t230.0'))
        self.assertTrue(lines[2].startswith('Cancer\t1\tCancer\t150.0'))

    def test_tree_with_period_and_focus(self):
        status, lines = self.run_cli('tree', '--dataset', 'deaths', '--period', '2019',
                                     '--dims', 'cause', 'sex', '--focus', 'Cancer')
        self.assertEqual(status, 0)
        self.assertTrue(lines[1].startswith('Total\t0\tTotal\t100.0'))
        self.assertEqual(len(lines), 4)

    def test_series(self):
        status, lines = self.run_cli('series', '--dataset', 'deaths', '--dim', 'cause')
        self.assertEqual(status, 0)
        self.assertEqual(lines[0].split('\t'), ['period', 'Cancer', 'Heart'])
        self.assertEqual(lines[1].split('\t'), ['2019', '100.0', '80.0'])
        self.assertIn("In 2020, Cancer accounted for 100.0% of deaths.", lines)

    def test_buckets(self):
        status, lines = self.run_cli('buckets', '--dataset', 'deaths', '--key', 'state')
        self.assertEqual(status, 0)
        self.assertEqual(lines[0], 'boundaries\t50.0\t115.0\t180.0')
        self.assertEqual(lines[1:], ['Alabama\t180.0\t1', 'Alaska\t50.0\t0'])

    def test_configured_default_period(self):
        status, lines = self.run_cli('tree', '--dataset', 'deaths', '--dims', 'cause',
                                     config_path=self.default_period_config_path)
        self.assertEqual(status, 0)
        self.assertTrue(lines[1].startswith('Total\t0\tTotal\t50.0'))

        _, lines = self.run_cli('tree', '--dataset', 'deaths', '--period', '2019',
                                config_path=self.default_period_config_path)
        self.assertTrue(lines[1].startswith('Total\t0\tTotal\t180.0'))

        _, lines = self.run_cli('buckets', '--dataset', 'deaths', '--key', 'state', '--all-periods',
                                config_path=self.default_period_config_path)
        self.assertEqual(lines[1:], ['Alabama\t180.0\t1', 'Alaska\t50.0\t0'])

    def test_unknown_dataset_fails(self):
        status, _ = self.run_cli('tree', '--dataset', 'nope')
        self.assertEqual(status, 1)

    def test_unknown_dimension_fails(self):
        status, _ = self.run_cli('tree', '--dataset', 'deaths', '--dims', 'planet')
        self.assertEqual(status, 1)

    def test_bad_filter_fails(self):
        status, _ = self.run_cli('tree', '--dataset', 'deaths', '--filter', 'sex')
        self.assertEqual(status, 1)


if __name__ == "__main__":
    unittest.main()
