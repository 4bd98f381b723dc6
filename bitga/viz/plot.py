# bitga/viz/plot.py
from matplotlib import pyplot as plt


def plot_history(history, path=None, title=None):
    """
    history: list of GenerationStats (or dicts with generation/worst/average/best)
    returns the matplotlib figure; saved to `path` when given
    """
    def col(name):
        return [row[name] if isinstance(row, dict) else getattr(row, name) for row in history]

    gens = col("generation")
    fig, ax = plt.subplots(figsize=(8, 5))
    ax.plot(gens, col("best"), label="best")
    ax.plot(gens, col("average"), label="average")
    ax.plot(gens, col("worst"), label="worst")
    ax.set_xlabel("generation")
    ax.set_ylabel("fitness")
    if title:
        ax.set_title(title)
    ax.legend()
    fig.tight_layout()
    if path is not None:
        fig.savefig(path)
    return fig
