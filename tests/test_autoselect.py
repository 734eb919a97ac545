import unittest

from cinema_seating.autoselect import auto_select, free_runs, rows_from_center
from cinema_seating.seats import SeatGrid, SeatStatus


class TestAutoSelect(unittest.TestCase):
    def test_rows_from_center(self):
        self.assertEqual(rows_from_center(10), [5, 6, 4, 7, 3, 8, 2, 9, 1, 10])
        self.assertEqual(rows_from_center(4), [2, 3, 1, 4])
        self.assertEqual(rows_from_center(0), [])

    def test_free_runs(self):
        g = SeatGrid(1, 6)
        g.mark_sold([(1, 3)])
        self.assertEqual(free_runs(g, 1), [(1, 2), (4, 6)])

    def test_empty_hall_picks_middle(self):
        g = SeatGrid(10, 10)
        self.assertEqual(auto_select(g, 4), [(5, 4), (5, 5), (5, 6), (5, 7)])

    def test_sold_seat_shifts_block(self):
        g = SeatGrid(10, 10)
        g.mark_sold([(5, 5)])
        self.assertEqual(auto_select(g, 4), [(5, 6), (5, 7), (5, 8), (5, 9)])

    def test_full_rows_are_skipped(self):
        g = SeatGrid(10, 10)
        g.mark_sold([(r, c) for r in (5, 6) for c in range(1, 11)])
        self.assertEqual(auto_select(g, 2), [(4, 5), (4, 6)])

    def test_ties_go_to_lower_column(self):
        g = SeatGrid(1, 10)
        self.assertEqual(auto_select(g, 3), [(1, 4), (1, 5), (1, 6)])

    def test_varying_rows(self):
        g = SeatGrid(3, [4, 6, 8])
        self.assertEqual(auto_select(g, 2), [(2, 3), (2, 4)])

    def test_selected_seats(self):
        g = SeatGrid(10, 10)
        g.get(5, 4).status = SeatStatus.selected
        self.assertEqual(auto_select(g, 4), [(5, 5), (5, 6), (5, 7), (5, 8)])
        self.assertEqual(auto_select(g, 4, include_selected=True), [(5, 4), (5, 5), (5, 6), (5, 7)])

    def test_nothing_fits(self):
        self.assertIsNone(auto_select(SeatGrid(3, 4), 5))
        self.assertIsNone(auto_select(SeatGrid(3, 4), 0))
        g = SeatGrid(2, 2)
        g.mark_sold([(1, 1), (2, 2)])
        self.assertIsNone(auto_select(g, 2))

    def test_deterministic(self):
        g = SeatGrid(12, 25)
        g.mark_sold([(6, 13), (7, 12), (7, 14)])
        first = auto_select(g, 3)
        for _ in range(5):
            self.assertEqual(auto_select(g, 3), first)


if __name__ == "__main__":
    unittest.main()
