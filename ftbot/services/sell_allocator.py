"""
Proportional Sell Allocator

Decides how many keys to sell when a trader sells keys of our wallet:
- Trader sold nothing, or we own nothing -> sell nothing
- Trader exited completely -> sell everything we own of them
- Otherwise sell the same fraction they sold, rounded up,
  but never the last key
"""


class InvalidHoldingError(ValueError):
    """Raised when a holding or trade amount is not a non-negative integer."""


def _check_amount(name: str, value) -> int:
    # bool is an int subclass but never a key count
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidHoldingError(f"{name} must be an integer, got {value!r}")
    if value < 0:
        raise InvalidHoldingError(f"{name} must be >= 0, got {value}")
    return value


def compute_sell_amount(
    local_holding: int,
    counterparty_remaining: int,
    counterparty_sold: int
) -> int:
    """
    Calculate how many keys of the trader we should sell.

    Formula: ceil(sold / (remaining + sold) * local_holding)

    Args:
        local_holding: Keys of the trader we currently own
        counterparty_remaining: Keys of ours the trader still holds after the sale
        counterparty_sold: Keys of ours the trader just sold

    Returns:
        Number of keys to sell, between 0 and local_holding

    Raises:
        InvalidHoldingError: If any argument is negative or not an integer
    """
    local_holding = _check_amount("local_holding", local_holding)
    counterparty_remaining = _check_amount("counterparty_remaining", counterparty_remaining)
    counterparty_sold = _check_amount("counterparty_sold", counterparty_sold)

    if counterparty_sold == 0 or local_holding == 0:
        return 0

    # Trader sold every key they had, we exit too
    if counterparty_remaining == 0:
        return local_holding

    prior_holding = counterparty_remaining + counterparty_sold

    # Integer ceiling of sold / prior * local
    to_sell = -(-(counterparty_sold * local_holding) // prior_holding)

    # Trader still holds some of our keys, so we keep one of theirs
    if to_sell == local_holding:
        return to_sell - 1

    return to_sell


# Quick test when run directly
if __name__ == "__main__":
    print("Sell Allocator Test")
    print("=" * 50)
    print(f"{'I own':<8} {'Trader holds':<14} {'Trader sold':<13} {'Sell'}")
    print("-" * 50)

    for i_own, holds, sold in [(2, 2, 2), (12, 1, 4), (5, 1, 11), (10, 0, 2), (1, 1, 0)]:
        print(f"{i_own:<8} {holds:<14} {sold:<13} {compute_sell_amount(i_own, holds, sold)}")
