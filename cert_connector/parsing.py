from typing import Any, Dict, List, Sequence

import pandas as pd


def empty_frame(columns: Sequence[str]) -> pd.DataFrame:
    return pd.DataFrame(columns=list(columns))


def project_record(record: Dict[str, Any], columns: Sequence[str]) -> Dict[str, Any]:
    return {c: record.get(c) for c in columns}


def records_to_frame(
    records: List[Dict[str, Any]], columns: Sequence[str]
) -> pd.DataFrame:
    """
    Project every record onto ``columns``, in order. Extra keys are dropped;
    missing keys become null. No records -> zero-row frame with the schema.
    """
    if not records:
        return empty_frame(columns)
    return pd.DataFrame(
        [project_record(r, columns) for r in records], columns=list(columns)
    )
