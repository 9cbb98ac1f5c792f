"""DrillDownView refresh cycle: clicks, period changes, breadcrumbs and share text."""

import unittest

from mortality_package.aggregator import AggregationOptions
from mortality_package.records import OTHER_KEY, TOTAL_KEY, Record, field_dimension
from mortality_package.view import DrillDownView, breadcrumb, format_path, format_share

CAUSE = field_dimension('cause', label='Cause', other_label='All other causes')
SEX = field_dimension('sex', label='Gender')


def rec(cause, sex, value, period, label=None):
    return Record(categories={'cause': cause, 'sex': sex}, value=value,
                  period=period, period_label=label)


class DrillDownViewTests(unittest.TestCase):

    def setUp(self):
        records = [
            rec('A', 'F', 40, 2019), rec('A', 'M', 20, 2019),
            rec('B', 'F', 30, 2019),
            rec('B', 'M', 25, 2020, '2020 (provisional)'),
            rec('C', 'F', 5, 2020, '2020 (provisional)'),
        ]
        self.view = DrillDownView(records, {'cause': CAUSE, 'sex': SEX},
                                  AggregationOptions(max_segments=5), period=2019)

    def test_initial_snapshot(self):
        snapshot = self.view.refresh()
        self.assertEqual(snapshot.tree.key, TOTAL_KEY)
        self.assertEqual(snapshot.tree.value, 90)
        self.assertEqual(snapshot.breadcrumb, (TOTAL_KEY,))
        self.assertEqual(snapshot.share, 1.0)
        self.assertEqual(snapshot.period_text, 'in 2019')
        self.assertEqual(self.view.periods, [2019, 2020])

    def test_click_focuses_depth_one_node(self):
        self.view.toggle_dimension('cause')
        self.view.toggle_dimension('sex')
        node = self.view.tree.find_child('A')
        snapshot = self.view.click(node)
        self.assertTrue(snapshot.state.is_focused)
        self.assertEqual(snapshot.tree.value, 60)
        self.assertEqual(snapshot.selected.key, 'A')
        self.assertEqual(snapshot.share, 1.0)
        self.assertEqual(snapshot.breadcrumb, ('A',))
        self.assertEqual(snapshot.focus_text, 'Focusing on A within Cause')

    def test_click_leaf_selects_without_focus(self):
        self.view.toggle_dimension('cause')
        self.view.toggle_dimension('sex')
        leaf = self.view.tree.find_child('A').find_child('M')
        snapshot = self.view.click(leaf)
        self.assertFalse(snapshot.state.is_focused)
        self.assertEqual(snapshot.breadcrumb, ('A', 'M'))
        self.assertAlmostEqual(snapshot.share, 20 / 90)
        self.assertEqual(snapshot.share_text, '22.2%')

    def test_period_change_clears_dead_focus_and_stale_selection(self):
        self.view.toggle_dimension('cause')
        self.view.click(self.view.tree.find_child('A'))
        snapshot = self.view.set_period(2020)
        self.assertFalse(snapshot.state.is_focused)
        self.assertEqual(snapshot.state.selection_path, ())
        self.assertIs(snapshot.selected, snapshot.tree)
        self.assertEqual(snapshot.tree.value, 30)
        self.assertEqual(snapshot.period_text, 'in 2020 (provisional)')

    def test_selection_survives_period_change_when_still_present(self):
        self.view.toggle_dimension('cause')
        self.view.select(self.view.tree.find_child('B'))
        snapshot = self.view.set_period(2020)
        self.assertEqual(snapshot.selected.key, 'B')
        self.assertAlmostEqual(snapshot.share, 25 / 30)

    def test_empty_period_has_undefined_share(self):
        snapshot = self.view.set_period(2030)
        self.assertTrue(snapshot.is_empty)
        self.assertIsNone(snapshot.share)
        self.assertEqual(snapshot.share_text, '—')

    def test_all_periods(self):
        snapshot = self.view.set_period(None)
        self.assertEqual(snapshot.tree.value, 120)
        self.assertEqual(snapshot.period_text, 'across all years')

    def test_dimension_toggle_resets_focus(self):
        self.view.toggle_dimension('cause')
        self.view.click(self.view.tree.find_child('A'))
        snapshot = self.view.toggle_dimension('sex')
        self.assertFalse(snapshot.state.is_focused)
        self.assertEqual(snapshot.state.selection_path, ())
        self.assertEqual([c.key for c in snapshot.tree.children], ['A', 'B'])

    def test_unknown_dimension(self):
        with self.assertRaises(KeyError):
            self.view.toggle_dimension('state')

    def test_teardown(self):
        self.view.toggle_dimension('cause')
        self.view.teardown()
        self.assertEqual(self.view.tracker.active_dimensions, ())
        self.assertEqual(self.view.tree.children, ())


class FormattingTests(unittest.TestCase):

    def test_breadcrumb_labels_other(self):
        self.assertEqual(breadcrumb((), (CAUSE,)), [TOTAL_KEY])
        self.assertEqual(breadcrumb((OTHER_KEY,), (CAUSE,)), ['All other causes'])
        self.assertEqual(format_path(('A', 'F'), (CAUSE, SEX)), 'A › F')
        self.assertEqual(format_path((OTHER_KEY,)), OTHER_KEY)

    def test_format_share(self):
        self.assertEqual(format_share(None), '—')
        self.assertEqual(format_share(0.0), '0.0%')
        self.assertEqual(format_share(0.5), '50.0%')


if __name__ == "__main__":
    unittest.main()
