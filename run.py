from matchday import create_app, db
from matchday.models import (
    ChampionPick,
    Match,
    Player,
    Prediction,
    ScoreBet,
    Team,
    Tournament,
)

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "Player": Player,
        "Team": Team,
        "Tournament": Tournament,
        "Match": Match,
        "Prediction": Prediction,
        "ScoreBet": ScoreBet,
        "ChampionPick": ChampionPick,
    }


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=app.config.get("DEBUG", False))
