from __future__ import annotations

from decimal import Decimal

from finlens.models import Rule, Transaction
from finlens.rules import apply_user_rules, draft_rule_from_transaction, new_rule


def _tx(desc: str, category: str = "", id: int = 0) -> Transaction:
    return Transaction(id=id, date="01/01/2024", description=desc, amount=Decimal("-1"), category=category)


def test_rule_overrides_automatic_category() -> None:
    tx = _tx("NETFLIX.COM", "Subscriptions")
    out = apply_user_rules([tx], [Rule(id="r1", text="netflix", category="Entertainment")])
    assert out[0].category == "Entertainment"
    assert tx.category == "Subscriptions"


def test_empty_inputs_return_the_same_object() -> None:
    rules = [new_rule("netflix", "Entertainment")]
    empty: list[Transaction] = []
    txs = [_tx("NETFLIX.COM")]

    assert apply_user_rules(empty, rules) is empty
    assert apply_user_rules(txs, []) is txs
    assert apply_user_rules(txs, [Rule(id="x", text="  ", category="Travel")]) is txs


def test_first_matching_rule_wins() -> None:
    rules = [new_rule("uber", "Travel"), new_rule("uber eats", "Food & Dining")]
    out = apply_user_rules([_tx("UBER EATS 123"), _tx("LYFT", "Transportation", 1)], rules)
    assert [t.category for t in out] == ["Travel", "Transportation"]


def test_draft_rule_uses_fallback_for_uncategorized() -> None:
    assert draft_rule_from_transaction(_tx("ZZQX", "Uncategorized"), fallback_category="Food & Dining").category == "Food & Dining"
    draft = draft_rule_from_transaction(_tx("NETFLIX.COM", "Entertainment"))
    assert (draft.text, draft.category) == ("NETFLIX.COM", "Entertainment")
    assert draft.id
