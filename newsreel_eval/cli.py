"""Command-line entry point for the NewsREEL prediction evaluator."""

import sys

import click
import structlog

from .config import ConfigError, load_config
from .evaluation.evaluator import Evaluator
from .evaluation.matcher import OUT_OF_ORDER_MODES
from .evaluation.policies import available_policies
from .streaming.ground_truth import GroundTruthSourceError
from .utils.logging_config import configure_logging

logger = structlog.get_logger()


@click.command("newsreel-eval")
@click.argument("prediction_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("ground_truth_file", type=click.Path(dir_okay=False))
@click.argument("window_size_millis", type=int, required=False)
@click.option("--config", "config_path", type=click.Path(exists=True), help="YAML config file")
@click.option("--policy", type=click.Choice(available_policies()), help="Match predicate")
@click.option(
    "--lookahead",
    "lookahead_millis",
    type=int,
    help="Also accept clicks up to this many ms after a prediction (default 0)",
)
@click.option("--out-of-order", type=click.Choice(OUT_OF_ORDER_MODES), help="Out-of-order handling")
@click.option("--max-recommendations", type=int, help="Items evaluated per prediction record")
@click.option("--blacklist", "blacklist", multiple=True, type=int, help="Item id that never counts")
@click.option("--histogram", is_flag=True, help="Print the response-time histogram")
@click.option("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR")
@click.option("--json-logs", is_flag=True, help="Emit JSON log records")
def main(
    prediction_file,
    ground_truth_file,
    window_size_millis,
    config_path,
    policy,
    lookahead_millis,
    out_of_order,
    max_recommendations,
    blacklist,
    histogram,
    log_level,
    json_logs,
):
    """Evaluate PREDICTION_FILE against GROUND_TRUTH_FILE within a time window."""
    try:
        config = load_config(config_path).merged(
            prediction_path=prediction_file,
            ground_truth_path=ground_truth_file,
            window_size_millis=window_size_millis,
            match_policy=policy,
            lookahead_millis=lookahead_millis,
            out_of_order=out_of_order,
            max_recommendations=max_recommendations,
            log_level=log_level,
            json_logs=json_logs or None,
        )
    except ConfigError as e:
        raise click.BadParameter(str(e)) from e

    if blacklist:
        config.blacklist = sorted(set(config.blacklist) | set(blacklist))

    configure_logging(config.log_level, json_mode=config.json_logs)

    click.echo("Evaluation is running ...")
    click.echo(f"predictionFileName= {config.prediction_path}")
    click.echo(f"groundTruthFileName= {config.ground_truth_path}")
    click.echo(f"windowSizeInMillis= {config.window_size_millis}")

    try:
        report = Evaluator(config).run()
    except GroundTruthSourceError as e:
        logger.error(f"Cannot read ground truth: {e}")
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(report.format_report(include_histogram=histogram))


if __name__ == "__main__":
    main()
