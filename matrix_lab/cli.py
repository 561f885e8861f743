"""
cli.py - Rich Command Line Interface for Matrix Lab

Usage:
    matrix-lab --help
    matrix-lab info a.csv
    matrix-lab eigen a.csv --seed 42
    matrix-lab qr a.csv --rhs b.csv
    matrix-lab svd a.csv --rank 2 --output a_rank2.csv
    matrix-lab pca data.csv --components 2 --output scores.csv
    matrix-lab train x.csv y.csv --method adam --learning-rate 0.05
    matrix-lab demo
"""

from __future__ import annotations

import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import numpy as np
import typer
from loguru import logger
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .exceptions import MatrixLabError
from .io import MatrixFormat, load_matrix, save_matrix
from .losses import get_loss_function
from .matrix import Matrix
from .models import LinearRegression
from .optimization import GradientDescent
from .pca import PCA
from .qr import QR
from .svd import SVD
from .types import (
    DEFAULT_GD_MAX_ITERATIONS,
    DEFAULT_GD_TOLERANCE,
    DEFAULT_LEARNING_RATE,
    DEFAULT_POWER_MAX_ITERATIONS,
    DEFAULT_POWER_TOLERANCE,
    LossType,
    OptimizationMethod,
)

app = typer.Typer(
    name="matrix-lab",
    help="Matrix Lab: dense linear algebra, decompositions and gradient descent",
    add_completion=False,
    rich_markup_mode="rich",
)
console = Console()

# Larger matrices are truncated when printed.
MAX_DISPLAY = 8


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def configure_logging(verbose: bool) -> None:
    """Route loguru output to stderr; DEBUG when verbose, WARNING otherwise."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


@contextmanager
def error_boundary() -> Iterator[None]:
    """Turn library and file errors into a red message and exit code 1."""
    try:
        yield
    except (FileNotFoundError, MatrixLabError, ValueError) as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(1)


def format_for(path: Path) -> MatrixFormat:
    """Output format from the file extension (CSV unless .json)."""
    return MatrixFormat.JSON if path.suffix.lower() == ".json" else MatrixFormat.CSV


def matrix_table(matrix: Matrix, title: str) -> Table:
    """Render a matrix as a Rich table, truncated to MAX_DISPLAY rows/cols."""
    # Narrow tables would otherwise wrap their title.
    table = Table(title=title, box=box.SIMPLE, title_style="bold cyan", min_width=len(title) + 4)
    n_cols = min(matrix.cols, MAX_DISPLAY)
    table.add_column("", style="dim")
    for j in range(n_cols):
        table.add_column(str(j), justify="right")
    if matrix.cols > n_cols:
        table.add_column("...")

    data = matrix.to_numpy()
    for i in range(min(matrix.rows, MAX_DISPLAY)):
        row = [str(i)] + [f"{data[i, j]:.6g}" for j in range(n_cols)]
        if matrix.cols > n_cols:
            row.append("...")
        table.add_row(*row)
    if matrix.rows > MAX_DISPLAY:
        table.add_row("...", *([""] * n_cols))
    return table


def summary_table(title: str) -> Table:
    table = Table(title=title, box=box.ROUNDED, show_header=False, title_style="bold cyan")
    table.add_column("Property", style="dim")
    table.add_column("Value", style="bold")
    return table


# =============================================================================
# COMMANDS
# =============================================================================

@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """Matrix Lab command line tools."""
    configure_logging(verbose)


@app.command()
def info(
    matrix_file: Path = typer.Argument(..., help="Matrix file (.csv or .json)"),
):
    """
    Display shape, trace and determinant of a matrix.

    Example:
        matrix-lab info a.csv
    """
    with error_boundary():
        A = load_matrix(matrix_file)

        table = summary_table("Matrix Summary")
        table.add_row("File", str(matrix_file))
        table.add_row("Shape", f"{A.rows} x {A.cols}")
        table.add_row("Square", "yes" if A.is_square else "no")
        if A.is_square:
            table.add_row("Trace", f"{A.trace():.6g}")
            table.add_row("Determinant", f"{A.determinant('lu'):.6g}")

        console.print(table)
        console.print(matrix_table(A, "Contents"))


@app.command()
def eigen(
    matrix_file: Path = typer.Argument(..., help="Square matrix file (.csv or .json)"),
    max_iterations: int = typer.Option(DEFAULT_POWER_MAX_ITERATIONS, "--max-iterations", "-n"),
    tolerance: float = typer.Option(DEFAULT_POWER_TOLERANCE, "--tolerance", "-t"),
    seed: Optional[int] = typer.Option(None, "--seed", "-s", help="Random seed for reproducibility"),
):
    """
    Estimate the dominant eigenpair by power iteration.

    Example:
        matrix-lab eigen a.csv --seed 42
    """
    with error_boundary():
        A = load_matrix(matrix_file)
        pair = A.power_iteration(max_iterations, tolerance, rng=np.random.default_rng(seed))

    table = summary_table("Dominant Eigenpair")
    table.add_row("Eigenvalue", f"{pair.eigenvalue:.10g}")
    table.add_row("Iterations", str(pair.iterations))
    table.add_row("Converged", "[green]yes[/green]" if pair.converged else "[yellow]no[/yellow]")
    console.print(table)
    console.print(matrix_table(pair.eigenvector, "Eigenvector"))


@app.command()
def qr(
    matrix_file: Path = typer.Argument(..., help="Matrix file (.csv or .json)"),
    rhs: Optional[Path] = typer.Option(None, "--rhs", "-b", help="Right-hand side to solve A x = b"),
):
    """
    Householder QR factorization, optionally solving A x = b.

    Example:
        matrix-lab qr a.csv --rhs b.csv
    """
    with error_boundary():
        A = load_matrix(matrix_file)
        factorizer = QR()
        factorizer.decompose(A)

        table = summary_table("QR Factorization")
        table.add_row("Shape", f"{A.rows} x {A.cols}")
        table.add_row("Rank", str(factorizer.rank()))
        if A.is_square:
            table.add_row("Determinant", f"{factorizer.determinant():.6g}")
        console.print(table)
        console.print(matrix_table(factorizer.get_Q(), "Q"))
        console.print(matrix_table(factorizer.get_R(), "R"))

        if rhs is not None:
            x = factorizer.solve(load_matrix(rhs))
            console.print(matrix_table(x, "Solution x"))


@app.command()
def svd(
    matrix_file: Path = typer.Argument(..., help="Matrix file (.csv or .json)"),
    rank: Optional[int] = typer.Option(None, "--rank", "-k", help="Rank of the reconstruction"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the reconstruction here"),
    seed: Optional[int] = typer.Option(None, "--seed", "-s", help="Random seed for reproducibility"),
):
    """
    Singular value decomposition by power iteration and deflation.

    Example:
        matrix-lab svd a.csv
        matrix-lab svd a.csv --rank 2 --output a_rank2.csv
    """
    with error_boundary():
        A = load_matrix(matrix_file)
        engine = SVD(rng=np.random.default_rng(seed))
        engine.decompose(A)
        reconstruction = engine.reconstruct(rank)

        values = engine.get_singular_values()
        table = summary_table("Singular Value Decomposition")
        table.add_row("Shape", f"{A.rows} x {A.cols}")
        table.add_row("Singular Values", ", ".join(f"{s:.6g}" for s in values))
        table.add_row("Condition Number", f"{engine.condition_number():.6g}")
        table.add_row("Numerical Rank", str(engine.numerical_rank()))
        console.print(table)

        if output is not None:
            save_matrix(reconstruction, output, format=format_for(output))
            console.print(f"\n  Saved rank-{rank or len(values)} reconstruction to: [bold]{output}[/bold]")


@app.command()
def pca(
    data_file: Path = typer.Argument(..., help="Data file, rows=samples, cols=features"),
    components: Optional[int] = typer.Option(None, "--components", "-k", help="Number of components"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write projected data here"),
    seed: Optional[int] = typer.Option(None, "--seed", "-s", help="Random seed for reproducibility"),
):
    """
    Principal component analysis.

    Example:
        matrix-lab pca data.csv --components 2 --output scores.csv
    """
    with error_boundary():
        X = load_matrix(data_file)
        engine = PCA(rng=np.random.default_rng(seed))
        scores = engine.fit_transform(X, components)

        variance = engine.get_explained_variance()
        ratio = engine.get_explained_variance_ratio()
        table = Table(title="Explained Variance", box=box.ROUNDED, title_style="bold cyan")
        table.add_column("Component", style="cyan")
        table.add_column("Variance", justify="right")
        table.add_column("Ratio", justify="right")
        table.add_column("Cumulative", justify="right")
        cumulative = 0.0
        for i, (value, share) in enumerate(zip(variance, ratio)):
            cumulative += share
            table.add_row(f"PC{i + 1}", f"{value:.6g}", f"{share:.1%}", f"{cumulative:.1%}")
        console.print(table)
        console.print(matrix_table(engine.get_components(), "Components (rows)"))

        if output is not None:
            save_matrix(scores, output, format=format_for(output))
            console.print(f"\n  Saved projected data to: [bold]{output}[/bold]")


@app.command()
def train(
    x_file: Path = typer.Argument(..., help="Inputs, rows=samples, cols=features"),
    y_file: Path = typer.Argument(..., help="Targets, rows=samples, cols=outputs"),
    method: OptimizationMethod = typer.Option(OptimizationMethod.SGD, "--method", "-m"),
    loss: LossType = typer.Option(LossType.MSE, "--loss", "-l"),
    learning_rate: float = typer.Option(DEFAULT_LEARNING_RATE, "--learning-rate", "-r"),
    max_iterations: int = typer.Option(DEFAULT_GD_MAX_ITERATIONS, "--max-iterations", "-n"),
    tolerance: float = typer.Option(DEFAULT_GD_TOLERANCE, "--tolerance", "-t"),
    seed: Optional[int] = typer.Option(None, "--seed", "-s", help="Random seed for reproducibility"),
):
    """
    Fit a linear regression by gradient descent.

    Example:
        matrix-lab train x.csv y.csv --method adam --learning-rate 0.05
    """
    with error_boundary():
        X = load_matrix(x_file)
        y = load_matrix(y_file)
        model = LinearRegression(X.cols, y.cols, rng=np.random.default_rng(seed))
        optimizer = GradientDescent(
            learning_rate=learning_rate,
            max_iterations=max_iterations,
            tolerance=tolerance,
            method=method,
        )
        with console.status(f"[bold blue]Training with {method.value}..."):
            history = optimizer.optimize(model, X, y, get_loss_function(loss))

    weights, bias = model.get_parameters()
    table = summary_table("Training Result")
    table.add_row("Method", method.value)
    table.add_row("Loss", loss.value)
    table.add_row("Iterations", str(history.iterations))
    table.add_row("Converged", "[green]yes[/green]" if history.converged else "[yellow]no[/yellow]")
    table.add_row("Final Loss", f"{history.final_loss:.6g}")
    console.print(table)
    console.print(matrix_table(weights, "Weights"))
    console.print(matrix_table(bias, "Bias"))


@app.command()
def demo():
    """
    Run every engine on small built-in examples.
    """
    console.print(Panel(
        "[bold cyan]Matrix Lab Demo[/bold cyan]\n\n"
        "  1. Matrix basics\n"
        "  2. Power iteration\n"
        "  3. QR solve\n"
        "  4. SVD\n"
        "  5. PCA\n"
        "  6. Gradient descent",
        title="Welcome to Matrix Lab",
        border_style="cyan",
    ))
    rng = np.random.default_rng(42)

    console.rule("[bold]Step 1: Matrix Basics[/bold]")
    A = Matrix([[1, 2], [3, 4]])
    console.print(matrix_table(A, "A"))
    console.print(f"  det(A) = {A.determinant():.6g}, trace(A) = {A.trace():.6g}")

    console.rule("[bold]Step 2: Power Iteration[/bold]")
    pair = Matrix([[4, 1], [1, 2]]).power_iteration(rng=rng)
    console.print(f"  Dominant eigenvalue of [[4, 1], [1, 2]]: {pair.eigenvalue:.6f}")

    console.rule("[bold]Step 3: QR Solve[/bold]")
    x = QR.solve_system(Matrix([[2, 1], [1, 2]]), Matrix([[3], [3]]))
    console.print(matrix_table(x, "Solution of [[2, 1], [1, 2]] x = [3, 3]"))

    console.rule("[bold]Step 4: SVD[/bold]")
    engine = SVD(rng=rng)
    engine.decompose(Matrix([[3, 0], [0, 2], [0, 0]]))
    console.print(f"  Singular values: {', '.join(f'{s:.6g}' for s in engine.get_singular_values())}")

    console.rule("[bold]Step 5: PCA[/bold]")
    reducer = PCA(rng=rng)
    reducer.fit(Matrix([[1, 2], [2, 4], [3, 6], [4, 8], [5, 10]]), n_components=1)
    console.print(f"  Explained variance ratio (PC1): {reducer.get_explained_variance_ratio()[0]:.1%}")

    console.rule("[bold]Step 6: Gradient Descent[/bold]")
    X = Matrix([[1], [2], [3], [4]])
    y = Matrix([[3], [5], [7], [9]])
    model = LinearRegression(1, rng=rng)
    history = GradientDescent(learning_rate=0.05, max_iterations=5000, tolerance=1e-12) \
        .optimize(model, X, y, get_loss_function(LossType.MSE))
    weights, bias = model.get_parameters()
    console.print(
        f"  y = {weights.get(0, 0):.4f} x + {bias.get(0, 0):.4f} "
        f"after {history.iterations} iterations (loss {history.final_loss:.3g})"
    )

    console.print()
    console.print(Panel(
        "[bold green]Demo Complete![/bold green]\n\n"
        "  [cyan]matrix-lab info[/cyan] a.csv\n"
        "  [cyan]matrix-lab svd[/cyan] a.csv --rank 2\n"
        "  [cyan]matrix-lab train[/cyan] x.csv y.csv --method adam",
        title="What's Next?",
        border_style="green",
    ))


@app.command()
def version():
    """Show version information."""
    from matrix_lab import __version__

    console.print(Panel(
        f"[bold cyan]Matrix Lab[/bold cyan] v{__version__}\n\n"
        "Dense matrices, QR, SVD, PCA and\n"
        "gradient-descent optimization.",
        border_style="cyan",
    ))


# =============================================================================
# ENTRY POINT
# =============================================================================

def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
