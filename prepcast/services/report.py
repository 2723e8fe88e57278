"""Processing report: the summary handed back once a session has been weighted and forecast."""

from datetime import datetime, timezone

from prepcast.schemas.analysis import ForecastResult
from prepcast.schemas.cleaning import CleaningConfig, WeightedStats
from prepcast.schemas.session import ProcessingReport, ReportForecast


def build_processing_report(session: dict) -> ProcessingReport:
    rows = session.get("cleaned_rows") or session.get("raw_rows") or []
    statistics = {
        col: WeightedStats.model_validate(values)
        for col, values in (session.get("statistics") or {}).items()
    }

    forecast = None
    stored = session.get("forecast")
    if stored:
        forecast = ReportForecast(
            column=stored["column"],
            historical_data_points=stored["historical_data_points"],
            forecast=ForecastResult.model_validate(stored["forecast"]),
        )

    config = session.get("cleaning_config")
    return ProcessingReport(
        file_name=session.get("name", ""),
        processing_date=datetime.now(timezone.utc),
        records_processed=len(rows),
        variables_analyzed=len(statistics),
        detected_domain=session.get("domain") or "general",
        cleaning_config=CleaningConfig.model_validate(config) if config else None,
        statistics=statistics,
        forecast=forecast,
    )
