"""
Deck and card representation.

Index i of a fresh deck holds suit SUITS[i // 13] and rank RANKS[i % 13],
so the deck runs Ace of Spades, Two of Spades, ... King of Clubs.
"""

from typing import List, NamedTuple, Sequence

SUITS = 'SHDC'
RANKS = 'A23456789TJQK'
DECK_SIZE = len(SUITS) * len(RANKS)


class Card(NamedTuple):
    suit: str
    rank: str

    def __str__(self) -> str:
        return f"{self.rank}{self.suit}"


def new_deck() -> List[Card]:
    """Create an ordered 52-card deck."""
    return [Card(SUITS[i // len(RANKS)], RANKS[i % len(RANKS)])
            for i in range(DECK_SIZE)]


def format_deck(deck: Sequence[Card], per_line: int = len(RANKS)) -> str:
    """Render the deck as rows of per_line cards, e.g. 'AS 2S 3S ...'."""
    lines = []
    for start in range(0, len(deck), per_line):
        lines.append(' '.join(str(card) for card in deck[start:start + per_line]))
    return '\n'.join(lines)
