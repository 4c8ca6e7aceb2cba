import random
import unittest

from ultimate_ttt.bitboard import WIN_LINES, SubBoardStatus
from ultimate_ttt.player import Player
from ultimate_ttt.ultimate_board import (GameResult, IllegalMoveError,
                                         UltimateBoard, decode_move,
                                         encode_move)

DRAWN = "XOXXOOOXX"


def position(subs: dict) -> str:
    """81-cell setup string with the given sub-boards filled in."""
    return "".join(subs.get(i, ".........") for i in range(9))


def outer_win_expected(statuses, player):
    return any(all(statuses[i].winner is player for i in line) for line in WIN_LINES)


class TestMoveEncoding(unittest.TestCase):
    def test_round_trip_edges(self):
        self.assertEqual(encode_move(0, 0), 0)
        self.assertEqual(encode_move(4, 4), 40)
        self.assertEqual(encode_move(8, 8), 80)
        self.assertEqual(decode_move(40), (4, 4))
        self.assertEqual(decode_move(80), (8, 8))

    def test_out_of_range(self):
        with self.assertRaises(IllegalMoveError):
            decode_move(81)
        with self.assertRaises(IllegalMoveError):
            decode_move(-1)
        with self.assertRaises(IllegalMoveError):
            encode_move(9, 0)


class TestUltimateBoardBasics(unittest.TestCase):
    def test_initial_board(self):
        board = UltimateBoard()
        self.assertIs(board.to_move, Player.ONE)
        self.assertIsNone(board.active_sub_board)
        self.assertIs(board.game_status(), GameResult.CONTINUE)
        self.assertEqual(list(board.legal_moves()), list(range(81)))

    def test_center_move_sets_active_sub_board(self):
        board = UltimateBoard()
        board.make_move(encode_move(4, 4))
        self.assertEqual(board.active_sub_board, 4)
        self.assertIs(board.to_move, Player.TWO)
        self.assertEqual(list(board.legal_moves()), [36, 37, 38, 39, 41, 42, 43, 44])

    def test_legal_moves_can_be_restarted(self):
        board = UltimateBoard.from_moves([40])
        self.assertEqual(list(board.legal_moves()), list(board.legal_moves()))
        self.assertTrue(board.has_legal_moves())

    def test_wrong_sub_board_is_rejected(self):
        board = UltimateBoard.from_moves([40])
        with self.assertRaises(IllegalMoveError):
            board.make_move(encode_move(0, 0))
        self.assertIs(board.to_move, Player.TWO)
        self.assertFalse(board.is_legal(0))

    def test_occupied_cell_is_rejected(self):
        # X center-center, O 4/0 (sends X to 0), X 0/4 (sends O back to 4)
        board = UltimateBoard.from_moves([40, 36, 4])
        self.assertEqual(board.active_sub_board, 4)
        before = board.describe()
        with self.assertRaises(IllegalMoveError):
            board.make_move(40)
        with self.assertRaises(IllegalMoveError):
            board.make_move(36)
        self.assertEqual(board.describe(), before)

    def test_closed_sub_board_is_rejected(self):
        board = UltimateBoard.from_string(
            position({0: "XXX......", 1: "OO.......", 2: "O........"}))
        self.assertIs(board.to_move, Player.ONE)
        self.assertIs(board.status(0), SubBoardStatus.WON_ONE)
        with self.assertRaises(IllegalMoveError):
            board.make_move(encode_move(0, 5))
        self.assertNotIn(5, list(board.legal_moves()))

    def test_move_after_game_over_is_rejected(self):
        board = UltimateBoard.from_string(
            position({0: "XXX......", 1: "XXX......", 2: "XXX......",
                      3: "OO.......", 4: "OO.......", 5: "OO.......",
                      6: "OO.......", 7: "O........"}))
        self.assertIs(board.game_status(), GameResult.WIN_ONE)
        with self.assertRaises(IllegalMoveError):
            board.make_move(encode_move(8, 0))


class TestSubBoardAndOuterBoard(unittest.TestCase):
    def test_completing_a_line_wins_the_sub_board(self):
        board = UltimateBoard.from_string(
            position({0: "XX.......", 5: "OO......."}), active_sub_board=0)
        self.assertIs(board.to_move, Player.ONE)
        board.make_move(encode_move(0, 2))
        self.assertIs(board.status(0), SubBoardStatus.WON_ONE)
        self.assertIs(board.outer.owner(0), Player.ONE)
        self.assertEqual(board.active_sub_board, 2)
        self.assertIs(board.game_status(), GameResult.CONTINUE)

    def test_sending_to_closed_sub_board_frees_the_choice(self):
        board = UltimateBoard.from_string(
            position({0: "XX.......", 2: "OOO......"}), to_move=Player.ONE, active_sub_board=0)
        board.make_move(encode_move(0, 2))
        self.assertIsNone(board.active_sub_board)
        playable = {m // 9 for m in board.legal_moves()}
        self.assertEqual(playable, {1, 3, 4, 5, 6, 7, 8})

    def test_all_drawn_sub_boards_is_a_draw(self):
        board = UltimateBoard.from_string(DRAWN * 9, to_move=Player.ONE)
        self.assertIs(board.game_status(), GameResult.DRAW)
        self.assertEqual(board.outer.occupied, 0)
        self.assertEqual(list(board.legal_moves()), [])

    def test_draw_on_a_full_outer_board_without_a_line(self):
        # outer: X O X / X O O / O X # (last one drawn)
        x, o = "XXX......", "OOO......"
        board = UltimateBoard.from_string(
            position({0: x, 1: o, 2: x, 3: x, 4: o, 5: o, 6: o, 7: x, 8: DRAWN}),
            to_move=Player.ONE)
        self.assertIs(board.status(8), SubBoardStatus.DRAWN)
        self.assertFalse(board.outer.is_set(8))
        self.assertIs(board.game_status(), GameResult.DRAW)

    def test_three_won_sub_boards_in_a_row_win_the_game(self):
        board = UltimateBoard.from_string(
            position({0: "XX.......", 1: "XXX......", 2: "XXX......",
                      3: "OO.......", 4: "OO.......", 5: "OO.......", 6: "OO..O...."}),
            to_move=Player.ONE, active_sub_board=0)
        board.make_move(2)
        self.assertIs(board.game_status(), GameResult.WIN_ONE)
        self.assertIs(board.winner, Player.ONE)
        self.assertEqual(list(board.legal_moves()), [])
        self.assertFalse(board.has_legal_moves())

    def test_closes_sub_board(self):
        board = UltimateBoard.from_string(
            position({0: "XX.OO....", 5: "O........"}), to_move=Player.ONE, active_sub_board=0)
        self.assertTrue(board.closes_sub_board(encode_move(0, 2)))
        self.assertFalse(board.closes_sub_board(encode_move(0, 5)))
        board = UltimateBoard.from_string(position({0: "XOXXOOOX."}), to_move=Player.TWO,
                                          active_sub_board=0)
        # filling the last cell draws the sub-board
        self.assertTrue(board.closes_sub_board(encode_move(0, 8)))


class TestUndo(unittest.TestCase):
    def test_undo_restores_every_field(self):
        rng = random.Random(7)
        board = UltimateBoard()
        snapshots, records = [], []
        while not board.game_status().is_terminal:
            snapshots.append((board.describe(), repr(board)))
            move = rng.choice(list(board.legal_moves()))
            records.append(board.make_move(move))
        for record, (described, representation) in zip(reversed(records), reversed(snapshots)):
            board.undo_move(record)
            self.assertEqual(board.describe(), described)
            self.assertEqual(repr(board), representation)
        self.assertEqual(board, UltimateBoard())
        self.assertEqual(board.hash, 0)

    def test_undo_with_a_stale_record_raises(self):
        board = UltimateBoard()
        board.make_move(40)
        second = board.make_move(36)
        board.make_move(4)
        with self.assertRaises(ValueError):
            board.undo_move(second)


class TestRandomGames(unittest.TestCase):
    def test_invariants_hold_through_random_games(self):
        rng = random.Random(1234)
        for _ in range(20):
            board = UltimateBoard()
            while True:
                moves = list(board.legal_moves())
                self.assertEqual(moves == [], board.game_status().is_terminal)
                self.assertEqual(moves, sorted(moves))
                if not moves:
                    break

                move = rng.choice(moves)
                sub, cell = decode_move(move)
                mover = board.to_move
                board.make_move(move)

                self.assertIs(board.status(sub), board.sub_boards[sub].status())
                self.assertIn(board.status(sub), (SubBoardStatus.OPEN, SubBoardStatus.DRAWN,
                                                  SubBoardStatus.won_by(mover)))
                if board.status(cell).is_open:
                    self.assertEqual(board.active_sub_board, cell)
                else:
                    self.assertIsNone(board.active_sub_board)
                self.assertIs(board.to_move, mover.opponent())

                statuses = board.sub_board_statuses()
                for s, status in enumerate(statuses):
                    self.assertIs(board.outer.owner(s), status.winner)
                for player in Player:
                    self.assertEqual(board.outer.is_won_by(player),
                                     outer_win_expected(statuses, player))

                rebuilt = UltimateBoard.from_string(
                    board.describe()["cells"], to_move=board.to_move,
                    active_sub_board=board.active_sub_board)
                self.assertEqual(rebuilt.hash, board.hash)
                self.assertEqual(rebuilt, board)
                self.assertIs(rebuilt.game_status(), board.game_status())

    def test_random_playout_leaves_board_untouched(self):
        board = UltimateBoard.from_moves([40, 36])
        before = board.describe()
        result = board.random_playout(random.Random(3))
        self.assertTrue(result.is_terminal)
        self.assertEqual(board.describe(), before)


class TestSetupAndRendering(unittest.TestCase):
    def test_from_string_rejects_bad_input(self):
        with self.assertRaises(IllegalMoveError):
            UltimateBoard.from_string("X" * 80)
        with self.assertRaises(IllegalMoveError):
            UltimateBoard.from_string("Z" + "." * 80)
        with self.assertRaises(IllegalMoveError):
            UltimateBoard.from_string(position({0: "XXX......"}))
        with self.assertRaises(IllegalMoveError):
            UltimateBoard.from_string(position({0: "XXX......", 1: "OOO......"}),
                                      active_sub_board=0)

    def test_from_string_rejects_unreachable_outer_boards(self):
        x, o = "XXX......", "OOO......"
        with self.assertRaises(IllegalMoveError):
            UltimateBoard.from_string(position({0: x, 1: x, 2: x, 3: o, 4: o, 5: o}))
        # two parallel rows cannot be finished by one sub-board win
        with self.assertRaises(IllegalMoveError):
            UltimateBoard.from_string(position({0: x, 1: x, 2: x, 6: x, 7: x, 8: x}),
                                      to_move=Player.TWO)

    def test_from_string_accepts_lines_through_one_sub_board(self):
        x = "XXX......"
        board = UltimateBoard.from_string(position({0: x, 1: x, 2: x, 3: x, 6: x}),
                                          to_move=Player.TWO)
        self.assertIs(board.game_status(), GameResult.WIN_ONE)

    def test_separators_are_ignored(self):
        text = " | ".join(["........."] * 9)
        self.assertEqual(UltimateBoard.from_string(text), UltimateBoard())

    def test_copy_is_independent(self):
        board = UltimateBoard.from_moves([40])
        clone = board.copy()
        clone.make_move(36)
        self.assertEqual(board.move_count, 1)
        self.assertFalse(board.sub_boards[4].is_set(0))
        self.assertNotEqual(board, clone)

    def test_rendering(self):
        board = UltimateBoard.from_string(
            position({0: "XXX......", 4: "O...O...."}), to_move=Player.TWO, active_sub_board=4)
        text = str(board)
        lines = text.splitlines()
        self.assertEqual(lines[0], "\\   / | . . . | . . .")
        self.assertEqual(lines[3], "------+-------+------")
        self.assertEqual(lines[4], ". . . | O . . | . . .")
        self.assertIn("Active sub-board: 4", text)
        self.assertIn("To move: Player O", text)
        self.assertIn("statuses=['WON_ONE'", repr(board))
        self.assertEqual(board.describe()["active_sub_board"], 4)


if __name__ == "__main__":
    unittest.main()
