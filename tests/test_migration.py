from __future__ import annotations

from decimal import Decimal

from storefront.cart import GUEST_CART_KEY, CartLineItem, CartStateManager, cart_storage_key, merge_line_items


def test_sign_in_copies_guest_cart_to_user_slot(cart, queue, store, identity, shirt) -> None:  # noqa: ANN001
    cart.add_item(shirt, shirt.variants[0])
    cart.add_item(shirt, shirt.variants[1])
    cart.add_item(shirt, shirt.variants[1])
    guest_items = cart.items

    identity.sign_in("token-1", "u1")
    assert queue.flush(timeout=5)

    assert cart.identity_key == "u1"
    assert cart.items == guest_items
    assert [(row["variant_key"], row["quantity"]) for row in store.get(cart_storage_key("u1"))] == [("M", 1), ("L", 2)]
    assert store.get(GUEST_CART_KEY) is None


def test_sign_in_unions_with_previous_user_cart(cart, queue, identity, shirt, poster) -> None:  # noqa: ANN001
    queue.set(
        cart_storage_key("u1"),
        [
            CartLineItem("p-shirt", "M", Decimal("400"), 1, "old.jpg", "Linen shirt").to_dict(),
            CartLineItem("p-mug", "One", Decimal("80"), 3, "", "Mug").to_dict(),
        ],
    )
    cart.add_item(shirt, shirt.variants[0])
    cart.add_item(poster, poster.variants[0])

    identity.sign_in("token-1", "u1")

    assert [(item.key, item.quantity) for item in cart.items] == [
        (("p-shirt", "M"), 2),
        (("p-mug", "One"), 3),
        (("p-poster", "50x70"), 1),
    ]
    assert cart.find("p-shirt", "M").unit_price == Decimal("400")


def test_logout_reloads_guest_slot(cart, queue, identity, shirt) -> None:  # noqa: ANN001
    cart.add_item(shirt, shirt.variants[0])
    identity.sign_in("token-1", "u1")
    cart.add_item(shirt, shirt.variants[1])

    identity.sign_out()

    assert cart.is_guest
    assert cart.items == ()

    identity.sign_in("token-2", "u1")
    assert [item.key for item in cart.items] == [("p-shirt", "M"), ("p-shirt", "L")]


def test_cold_start_with_stored_identity_loads_user_cart(queue, identity, shirt) -> None:  # noqa: ANN001
    first = CartStateManager(queue)
    first.bind_identity(identity)
    identity.sign_in("token-1", "u1")
    first.add_item(shirt, shirt.variants[0])
    queue.flush(timeout=5)

    restarted = CartStateManager(queue)
    restarted.bind_identity(identity)

    assert restarted.identity_key == "u1"
    assert restarted.items == first.items


def test_merge_line_items_skips_zero_quantities() -> None:
    base = [CartLineItem("a", "S", Decimal("1"), 0)]
    incoming = [CartLineItem("a", "S", Decimal("2"), 2)]

    merged = merge_line_items(base, incoming)

    assert merged == [CartLineItem("a", "S", Decimal("2"), 2)]


def test_switching_accounts_loads_the_other_users_cart(cart, queue, identity, shirt, poster) -> None:  # noqa: ANN001
    identity.sign_in("token-a", "user-a")
    cart.add_item(shirt, shirt.variants[0])
    identity.sign_in("token-b", "user-b")

    assert cart.identity_key == "user-b"
    assert cart.items == ()

    cart.add_item(poster, poster.variants[0])
    identity.sign_in("token-a", "user-a")

    assert [item.key for item in cart.items] == [("p-shirt", "M")]
    assert queue.flush(timeout=5)
    assert [entry["product_id"] for entry in queue.get("cart_user-b")] == ["p-poster"]
    assert queue.get(GUEST_CART_KEY) is None
