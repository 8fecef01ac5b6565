import unittest
from decimal import Decimal

from storefront.models.cart import CartItem
from storefront.services.pricing import compute_totals

THRESHOLD = Decimal("3000")


def item(item_id, price, quantity, stock=10):
    return CartItem(
        id=item_id,
        product_id=f"prod-{item_id}",
        name=f"Producto {item_id}",
        price=Decimal(price),
        quantity=quantity,
        stock=stock,
    )


class TestComputeTotals(unittest.TestCase):

    def test_below_threshold_charges_shipping(self):
        totals = compute_totals([item("a", 1000, 2)], Decimal("290"), 0, THRESHOLD)

        self.assertEqual(totals.subtotal, Decimal("2000.00"))
        self.assertEqual(totals.item_count, 2)
        self.assertFalse(totals.is_free_shipping)
        self.assertEqual(totals.shipping_cost, Decimal("290.00"))
        self.assertEqual(totals.total, Decimal("2290.00"))
        self.assertEqual(totals.remaining_for_free_shipping, Decimal("1000.00"))

    def test_above_threshold_ships_free(self):
        totals = compute_totals([item("a", 2000, 2)], Decimal("290"), 0, THRESHOLD)

        self.assertEqual(totals.subtotal, Decimal("4000.00"))
        self.assertTrue(totals.is_free_shipping)
        self.assertEqual(totals.shipping_cost, Decimal("0.00"))
        self.assertEqual(totals.total, Decimal("4000.00"))
        self.assertEqual(totals.remaining_for_free_shipping, Decimal("0.00"))

    def test_threshold_is_inclusive(self):
        totals = compute_totals([item("a", 1500, 2)], Decimal("500"), 0, THRESHOLD)

        self.assertTrue(totals.is_free_shipping)
        self.assertEqual(totals.total, Decimal("3000.00"))

    def test_free_shipping_ignores_any_resolved_cost(self):
        for cost in (Decimal("0"), Decimal("290"), Decimal("99999")):
            totals = compute_totals([item("a", 5000, 1)], cost, 0, THRESHOLD)
            self.assertEqual(totals.shipping_cost, Decimal("0.00"))
            self.assertEqual(totals.total, Decimal("5000.00"))

    def test_coupon_discount_on_free_shipping_order(self):
        totals = compute_totals([item("a", 2000, 2)], Decimal("290"), Decimal("400"), THRESHOLD)

        self.assertEqual(totals.discount, Decimal("400.00"))
        self.assertEqual(totals.total, Decimal("3600.00"))

    def test_sums_over_several_lines(self):
        items = [item("a", "199.90", 3), item("b", 50, 1), item("c", "0.10", 7)]
        totals = compute_totals(items, None, 0, THRESHOLD)

        self.assertEqual(totals.item_count, 11)
        self.assertEqual(totals.subtotal, Decimal("650.40"))

    def test_unknown_shipping_contributes_nothing(self):
        totals = compute_totals([item("a", 1000, 1)], None, 0, THRESHOLD)

        self.assertFalse(totals.shipping_known)
        self.assertEqual(totals.total, Decimal("1000.00"))

    def test_total_never_negative(self):
        totals = compute_totals([item("a", 100, 1)], Decimal("290"), Decimal("1000"), THRESHOLD)

        self.assertEqual(totals.total, Decimal("0.00"))

    def test_empty_cart(self):
        totals = compute_totals([], Decimal("290"), 0, THRESHOLD)

        self.assertEqual(totals.subtotal, Decimal("0.00"))
        self.assertEqual(totals.item_count, 0)
        self.assertEqual(totals.total, Decimal("290.00"))

    def test_same_inputs_same_result(self):
        items = [item("a", 1000, 2), item("b", 300, 1)]
        snapshot = [i.model_copy() for i in items]

        first = compute_totals(items, Decimal("290"), Decimal("100"), THRESHOLD)
        second = compute_totals(items, Decimal("290"), Decimal("100"), THRESHOLD)

        self.assertEqual(first, second)
        self.assertEqual(items, snapshot)


if __name__ == "__main__":
    unittest.main()
