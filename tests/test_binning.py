"""Equal-width choropleth buckets."""

import math
import unittest

from mortality_package.binning import bucket_by_key, compute_buckets, values_by_key
from mortality_package.records import Record, field_dimension

STATE = field_dimension('state', collapsible=False)


class ComputeBucketsTests(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.buckets = compute_buckets([0, 3.5, 10, float('nan'), None], 5)

    def test_boundaries(self):
        self.assertEqual(self.buckets.bucket_count, 5)
        self.assertEqual(len(self.buckets.boundaries), 6)
        self.assertEqual(self.buckets.domain, (0.0, 10.0))
        for lo, hi in zip(self.buckets.boundaries, self.buckets.boundaries[1:]):
            self.assertLessEqual(lo, hi)

    def test_inner_boundary_goes_up(self):
        self.assertEqual(self.buckets(1.99), 0)
        self.assertEqual(self.buckets(2.0), 1)
        self.assertEqual(self.buckets(10), 4)

    def test_monotonic_index(self):
        values = [0, 0.5, 2, 3.9, 4, 6.1, 8, 9.99, 10]
        indices = [self.buckets.bucket_index(v) for v in values]
        self.assertEqual(indices, sorted(indices))

    def test_out_of_domain_clamps(self):
        self.assertEqual(self.buckets(-50), 0)
        self.assertEqual(self.buckets(1e9), 4)

    def test_unavailable_values(self):
        self.assertIsNone(self.buckets(None))
        self.assertIsNone(self.buckets(float('nan')))
        self.assertIsNone(self.buckets('n/a'))

    def test_single_value_domain(self):
        buckets = compute_buckets([7, 7, 7], 4)
        self.assertEqual(buckets.domain, (7.0, 7.0))
        self.assertEqual(buckets(7), 3)

    def test_no_data_domain(self):
        buckets = compute_buckets([float('inf'), None], 3)
        self.assertFalse(buckets.has_data)
        self.assertEqual(buckets.domain, (0.0, 1.0))
        self.assertEqual(buckets(0), 0)
        self.assertEqual(buckets(1), 2)
        self.assertIsNone(buckets(0.5))

    def test_invalid_count(self):
        for count in (1, 0, 2.5, True):
            with self.assertRaises(ValueError):
                compute_buckets([1, 2], count)

    def test_tick_labels(self):
        self.assertEqual(compute_buckets([0, 1], 2).tick_labels("{:.2f}"), ['0.00', '0.50', '1.00'])


class ValuesByKeyTests(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.records = [
            Record(categories={'state': 'Alabama'}, value=10.0),
            Record(categories={'state': 'Alabama'}, value=20.0),
            Record(categories={'state': 'Alaska'}, value=5.0),
            Record(categories={'state': 'Alaska'}, value=math.nan),
        ]

    def test_sum(self):
        self.assertEqual(values_by_key(self.records, STATE), {'Alabama': 30.0, 'Alaska': 5.0})

    def test_mean(self):
        self.assertEqual(values_by_key(self.records, STATE, combine='mean'), {'Alabama': 15.0, 'Alaska': 5.0})

    def test_unknown_combine(self):
        with self.assertRaises(ValueError):
            values_by_key(self.records, STATE, combine='max')

    def test_bucket_by_key_covers_requested_keys(self):
        values = values_by_key(self.records, STATE)
        buckets = compute_buckets(values.values(), 2)
        result = bucket_by_key(values, buckets, keys=['Alabama', 'Alaska', 'Arizona'])
        self.assertEqual(result, {'Alabama': 1, 'Alaska': 0, 'Arizona': None})


if __name__ == "__main__":
    unittest.main()
