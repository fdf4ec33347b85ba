from tictactoe import db
from datetime import datetime


class Game(db.Model):
    __tablename__ = 'game'
    id = db.Column(db.Integer, primary_key=True)
    board = db.Column(db.Text, nullable=False)  # JSON array of 9 cells, see game.board
    isxnext = db.Column(db.Boolean, nullable=False, default=True)
    winner = db.Column(db.String(1), nullable=True)
    player1 = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    version = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    owner = db.relationship('User', backref=db.backref('games', lazy=True))

    def to_record(self):
        return {
            'id': self.id,
            'board': self.board,
            'isxnext': self.isxnext,
            'winner': self.winner,
            'player1': self.player1,
            'version': self.version,
        }

    def __repr__(self):
        return f'<Game {self.id} v{self.version}>'
