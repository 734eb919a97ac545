import unittest

from cinema_seating.config import KioskSettings
from cinema_seating.errors import InvalidState
from cinema_seating.kiosk import FilmSelector, Kiosk
from cinema_seating.navigation import Stage
from cinema_seating.notify import Notifier
from cinema_seating.seats import SeatStatus


class RecordingNotifier(Notifier):
    def __init__(self):
        self.messages = []

    def message(self, text, level="info", *, seconds=3.0):
        self.messages.append((text, level))


def _kiosk():
    settings = KioskSettings(
        hall_rows=5,
        seats_per_row=10,
        ticket_count=2,
        canvas_width=1000,
        canvas_height=600,
        payment_delay=0.01,
    )
    notifier = RecordingNotifier()
    return Kiosk(settings, notifier=notifier), notifier


def _to_seat_stage(k):
    k.handle_input("choose_film", {"film_id": "cat"})
    k.handle_input("navigate", {"stage": "movie"})
    k.handle_input("navigate", {"stage": "seat"})


class TestFilmSelector(unittest.TestCase):
    def test_choose(self):
        f = FilmSelector()
        self.assertIsNone(f.get_selected_film())
        f.choose("girl")
        self.assertEqual(f.get_selected_film(), "girl")
        with self.assertRaises(InvalidState):
            f.choose("jaws")
        self.assertEqual(f.get_selected_film(), "girl")


class TestKiosk(unittest.TestCase):
    def test_initial_state(self):
        k, _n = _kiosk()
        s = k.state()
        self.assertEqual(s["stage"], "config")
        self.assertEqual(s["seats_total"], 50)
        self.assertEqual(s["ticket_count"], 2)
        self.assertEqual(len(k.layout), 50)
        self.assertEqual(k.svg.count('fill="green"'), 50)

    def test_pointer_toggles_seat(self):
        k, _n = _kiosk()
        _to_seat_stage(k)
        pos = k.layout[(3, 4)]
        seat = k.handle_input("pointer", {"x": pos.x, "y": pos.y})
        self.assertEqual(seat.key, (3, 4))
        self.assertEqual(k.grid.get(3, 4).status, SeatStatus.selected)
        self.assertEqual(k.svg.count('fill="yellow"'), 1)
        k.handle_input("pointer", {"x": pos.x, "y": pos.y})
        self.assertEqual(k.grid.get(3, 4).status, SeatStatus.available)
        self.assertEqual(k.svg.count('fill="yellow"'), 0)

    def test_pointer_on_empty_space(self):
        k, n = _kiosk()
        _to_seat_stage(k)
        self.assertIsNone(k.handle_input("pointer", {"x": 1, "y": 1}))
        self.assertEqual(n.messages, [])
        self.assertEqual(len(k.selection), 0)

    def test_seat_actions_need_seat_stage(self):
        k, n = _kiosk()
        self.assertIsNone(k.handle_input("toggle_seat", {"row": 1, "col": 1}))
        self.assertEqual(n.messages[-1][1], "warning")
        self.assertEqual(k.grid.get(1, 1).status, SeatStatus.available)

    def test_capacity_exceeded_becomes_message(self):
        k, n = _kiosk()
        _to_seat_stage(k)
        k.handle_input("toggle_seat", {"row": 1, "col": 1})
        k.handle_input("toggle_seat", {"row": 1, "col": 2})
        self.assertIsNone(k.handle_input("toggle_seat", {"row": 1, "col": 3}))
        self.assertEqual(n.messages[-1][1], "warning")
        self.assertEqual(k.selection.seat_ids, ["1-1", "1-2"])

    def test_sold_seat_cannot_be_toggled(self):
        k, n = _kiosk()
        k.grid.mark_sold([(2, 2)])
        _to_seat_stage(k)
        self.assertIsNone(k.handle_input("toggle_seat", {"row": 2, "col": 2}))
        self.assertEqual(k.grid.get(2, 2).status, SeatStatus.sold)

    def test_auto_select(self):
        k, n = _kiosk()
        _to_seat_stage(k)
        k.handle_input("toggle_seat", {"row": 1, "col": 1})
        seats = k.handle_input("auto_select")
        self.assertEqual([s.id for s in seats], ["3-5", "3-6"])
        self.assertEqual(k.grid.get(1, 1).status, SeatStatus.available)
        self.assertEqual(n.messages[-1][1], "success")

    def test_auto_select_nothing_fits(self):
        k, n = _kiosk()
        k.grid.mark_sold([(r, c) for r in range(1, 6) for c in range(1, 11) if c % 2])
        _to_seat_stage(k)
        self.assertIsNone(k.handle_input("auto_select"))
        self.assertEqual(n.messages[-1][1], "warning")

    def test_configure_new_capacity_drops_selection(self):
        k, _n = _kiosk()
        _to_seat_stage(k)
        k.handle_input("toggle_seat", {"row": 1, "col": 1})
        k.handle_input("configure", {"rows": 8, "seats_per_row": 12})
        self.assertEqual(len(k.grid), 96)
        self.assertEqual(len(k.selection), 0)
        self.assertIs(k.navigation.selection, k.selection)
        self.assertEqual(len(k.layout), 96)

    def test_configure_same_capacity_keeps_statuses(self):
        k, _n = _kiosk()
        k.grid.mark_sold([(2, 2)])
        k.handle_input("configure", {"rows": 5, "seats_per_row": 10, "ticket_count": 4})
        self.assertEqual(k.grid.get(2, 2).status, SeatStatus.sold)
        self.assertEqual(k.selection.ticket_count, 4)

    def test_lower_ticket_count_clears_selection(self):
        k, _n = _kiosk()
        _to_seat_stage(k)
        k.handle_input("toggle_seat", {"row": 1, "col": 1})
        k.handle_input("toggle_seat", {"row": 1, "col": 2})
        k.handle_input("set_tickets", {"count": 1})
        self.assertEqual(len(k.selection), 0)
        self.assertEqual(k.selection.ticket_count, 1)
        self.assertIsNone(k.handle_input("set_tickets", {"count": 0}))
        self.assertEqual(k.selection.ticket_count, 1)

    def test_hall_is_locked_once_paying(self):
        k, n = _kiosk()
        _to_seat_stage(k)
        k.handle_input("toggle_seat", {"row": 1, "col": 1})
        k.handle_input("navigate", {"stage": "payment"})

        self.assertIsNone(k.handle_input("configure", {"rows": 8, "seats_per_row": 12}))
        self.assertEqual(n.messages[-1][1], "warning")
        self.assertIsNone(k.handle_input("set_tickets", {"count": 5}))
        s = k.state()
        self.assertEqual(s["stage"], "payment")
        self.assertEqual(s["seats_total"], 50)
        self.assertEqual(s["selected"], ["1-1"])
        self.assertEqual(s["ticket_count"], 2)

        k.handle_input("navigate", {"stage": "seat"})
        k.handle_input("configure", {"rows": 8, "seats_per_row": 12})
        self.assertEqual(k.state()["seats_total"], 96)

    def test_payment_needs_running_loop(self):
        k, n = _kiosk()
        _to_seat_stage(k)
        k.handle_input("toggle_seat", {"row": 2, "col": 2})
        k.handle_input("navigate", {"stage": "payment"})
        self.assertIsNone(k.handle_input("confirm_payment"))
        self.assertEqual(n.messages[-1][1], "warning")
        self.assertFalse(k.navigation.is_payment_pending())
        self.assertEqual(k.state()["stage"], "payment")

    def test_hover_highlights_and_widens_hit(self):
        k, _n = _kiosk()
        _to_seat_stage(k)
        pos = k.layout[(3, 4)]
        self.assertEqual(k.handle_input("hover", {"x": pos.x, "y": pos.y}), (3, 4))
        self.assertEqual(k.state()["hovered"], "3-4")
        self.assertEqual(k.svg.count('fill="deepskyblue"'), 1)

        # Just outside the seat circle, inside the enlarged hovered hit area.
        seat = k.handle_input("pointer", {"x": pos.x + 1.1 * k.layout.seat_radius, "y": pos.y})
        self.assertEqual(seat.key, (3, 4))

        self.assertIsNone(k.handle_input("hover", {}))
        self.assertIsNone(k.state()["hovered"])
        self.assertEqual(k.svg.count('fill="deepskyblue"'), 0)
        self.assertIsNone(k.handle_input("pointer", {"x": pos.x + 1.1 * k.layout.seat_radius, "y": pos.y}))

    def test_resize_drops_hover(self):
        k, _n = _kiosk()
        pos = k.layout[(1, 1)]
        k.handle_input("hover", {"x": pos.x, "y": pos.y})
        k.handle_input("resize", {"width": 500, "height": 300})
        self.assertIsNone(k.hovered)

    def test_resize_keeps_statuses(self):
        k, _n = _kiosk()
        k.grid.mark_sold([(5, 10)])
        pitch = k.layout.pitch
        k.handle_input("resize", {"width": 2000, "height": 1200})
        self.assertAlmostEqual(k.layout.pitch, 2 * pitch, places=9)
        self.assertEqual(k.grid.get(5, 10).status, SeatStatus.sold)
        self.assertIn('width="2000"', k.svg)

    def test_reset_keeps_film(self):
        k, _n = _kiosk()
        _to_seat_stage(k)
        k.handle_input("toggle_seat", {"row": 1, "col": 1})
        self.assertTrue(k.handle_input("reset"))
        s = k.state()
        self.assertEqual(s["stage"], "config")
        self.assertEqual(s["history"], ["config"])
        self.assertEqual(s["selected"], [])
        self.assertEqual(s["film"], "cat")

    def test_snapshot_restore(self):
        k, _n = _kiosk()
        k.grid.mark_sold([(1, 1)])
        record = k.snapshot()
        record["2-2"] = "selected"
        k.grid.mark_sold([(4, 4)])
        self.assertEqual(k.restore(record), 1)
        self.assertEqual(k.grid.get(4, 4).status, SeatStatus.available)
        self.assertEqual(k.grid.get(2, 2).status, SeatStatus.available)

    def test_unknown_event(self):
        k, _n = _kiosk()
        with self.assertRaises(ValueError):
            k.handle_input("teleport", {})


class TestKioskPayment(unittest.IsolatedAsyncioTestCase):
    async def test_full_booking(self):
        k, n = _kiosk()
        _to_seat_stage(k)
        k.handle_input("toggle_seat", {"row": 3, "col": 4})
        k.handle_input("toggle_seat", {"row": 3, "col": 5})
        self.assertTrue(k.handle_input("navigate", {"stage": Stage.payment}))

        task = k.handle_input("confirm_payment")
        self.assertIsNotNone(task)
        self.assertIsNone(k.handle_input("confirm_payment"))
        order = await task

        self.assertEqual(order.seat_ids, ("3-4", "3-5"))
        s = k.state()
        self.assertEqual(s["stage"], "confirm")
        self.assertEqual(s["seats_sold"], 2)
        self.assertEqual(s["last_order"]["order_id"], order.order_id)
        self.assertFalse(s["payment_pending"])
        self.assertEqual(k.svg.count('fill="red"'), 2)
        self.assertEqual(n.messages[-1], ("Payment successful!", "success"))


if __name__ == "__main__":
    unittest.main()
