"""Game tree representation for poker."""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Iterable, Iterator, Optional

from .cards import Card, Hand
from .evaluator import HandEvaluator, get_evaluator
from .state import Action, GameState, Position, make_info_set_key


class NodeType(Enum):
    """Types of nodes in a game tree."""
    PLAYER = auto()       # Player decision node
    CHANCE = auto()       # Chance node (card deal)
    TERMINAL = auto()     # End of hand (showdown or fold)


def showdown_sign(
    oop_hand: Hand,
    ip_hand: Hand,
    board: Iterable[Card],
    evaluator: Optional[HandEvaluator] = None,
) -> int:
    """
    Compare both hands on a complete board.

    Returns:
        +1 if OOP wins, -1 if IP wins, 0 for a split pot
    """
    evaluator = evaluator or get_evaluator()
    board = list(board)
    return evaluator.compare(list(oop_hand.cards) + board, list(ip_hand.cards) + board)


def terminal_payoff(state: GameState, player: Position, showdown: int) -> float:
    """
    Chips won or lost by player over the whole hand.

    Args:
        state: Terminal state
        player: Player to value the hand for
        showdown: showdown_sign() of the dealt hands, used when no one folded

    Returns:
        Profit for player; the two players' payoffs always sum to zero
    """
    if state.folded is not None:
        loss = state.contribution(state.folded)
        return -loss if state.folded == player else loss

    if showdown == 0:
        return 0.0
    winner = Position.OOP if showdown > 0 else Position.IP
    won = state.contribution(winner.opponent)
    return won if winner == player else -won


@dataclass
class GameNode:
    """
    A node in the poker game tree.

    Represents a point in the hand where either:
    - A player must make a decision (PLAYER)
    - A card is dealt (CHANCE)
    - The hand ends (TERMINAL)

    children[i] is the index of the node reached by actions[i].
    """
    state: GameState
    node_type: NodeType
    actions: list[Action] = field(default_factory=list)
    children: list[int] = field(default_factory=list)
    parent: Optional[int] = None
    depth: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.node_type == NodeType.TERMINAL

    @property
    def is_chance(self) -> bool:
        return self.node_type == NodeType.CHANCE

    @property
    def is_player(self) -> bool:
        return self.node_type == NodeType.PLAYER

    @property
    def player(self) -> Position:
        return self.state.to_act


class GameTree:
    """
    Eagerly enumerated betting tree stored as a flat node list.

    Node 0 is the root. Chance nodes between streets get a single child
    with the next runout card dealt, or stay leaves when no card is given.
    """

    def __init__(self):
        self.nodes: list[GameNode] = []

    def build(self, state: GameState, runout: Iterable[Card] = ()) -> int:
        """
        Build the tree below state.

        Args:
            state: Root state (copied)
            runout: Cards to deal in order at chance nodes

        Returns:
            Index of the root node
        """
        runout = list(runout)
        board_size = len(state.board)
        self.nodes = []

        pending = [self._add_node(state.copy(), None, 0)]
        while pending:
            index = pending.pop()
            node = self.nodes[index]

            if node.is_player:
                node.actions = node.state.get_available_actions()
                for action in node.actions:
                    child = self._add_node(node.state.after_action(action), index, node.depth + 1)
                    node.children.append(child)
                    pending.append(child)

            elif node.is_chance:
                dealt = len(node.state.board) - board_size
                if dealt >= len(runout):
                    continue
                next_state = node.state.copy()
                if len(next_state.board) == 3:
                    ok = next_state.set_turn(runout[dealt])
                else:
                    ok = next_state.set_river(runout[dealt])
                if ok:
                    child = self._add_node(next_state, index, node.depth + 1)
                    node.children.append(child)
                    pending.append(child)

        return 0

    def _add_node(self, state: GameState, parent: Optional[int], depth: int) -> int:
        if state.is_terminal():
            node_type = NodeType.TERMINAL
        elif state.awaiting_card():
            node_type = NodeType.CHANCE
        else:
            node_type = NodeType.PLAYER
        self.nodes.append(GameNode(state=state, node_type=node_type, parent=parent, depth=depth))
        return len(self.nodes) - 1

    @property
    def root(self) -> GameNode:
        return self.nodes[0]

    def node(self, index: int) -> GameNode:
        return self.nodes[index]

    def children(self, index: int) -> list[GameNode]:
        return [self.nodes[i] for i in self.nodes[index].children]

    def count_nodes(self) -> dict[str, int]:
        """Count nodes by type."""
        counts = {"total": 0, "player": 0, "chance": 0, "terminal": 0}
        for node in self.nodes:
            counts["total"] += 1
            counts[node.node_type.name.lower()] += 1
        return counts

    def get_terminal_nodes(self) -> list[GameNode]:
        """Get all terminal nodes."""
        return [node for node in self.nodes if node.is_terminal]

    def iter_player_nodes(self) -> Iterator[tuple[int, GameNode]]:
        for index, node in enumerate(self.nodes):
            if node.is_player:
                yield index, node

    def max_depth(self) -> int:
        return max((node.depth for node in self.nodes), default=0)

    def info_set_keys(self, oop_hand: Hand, ip_hand: Hand, suit_isomorphic: bool = True) -> set[tuple]:
        """Information-set keys of every decision node for the given deal."""
        hands = {Position.OOP: oop_hand, Position.IP: ip_hand}
        return {
            make_info_set_key(node.player, hands[node.player], node.state, suit_isomorphic)
            for _, node in self.iter_player_nodes()
        }

    def __len__(self) -> int:
        return len(self.nodes)
