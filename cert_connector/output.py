import gzip
import json
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import numpy as np
import pandas as pd

FORMATS = {"csv": "csv", "jsonl": "jsonl", "parquet": "parquet"}


def stringify_non_scalars(df: pd.DataFrame) -> pd.DataFrame:
    """JSON-encode nested values (Locations, Metadata, History, ...)."""
    if df.empty:
        return df

    def _to_json(v):
        if v is None or (isinstance(v, float) and np.isnan(v)):
            return v
        if isinstance(v, (str, int, float, bool, pd.Timestamp)):
            return v
        try:
            return json.dumps(v, default=str, ensure_ascii=False)
        except (TypeError, ValueError):
            return str(v)

    out = df.copy()
    obj_cols = [c for c in out.columns if out[c].dtype == "object"]
    for c in obj_cols:
        out[c] = out[c].map(_to_json)
    return out


def serialize_df(
    df: pd.DataFrame, fmt: str, out_cfg: Dict[str, Any]
) -> Tuple[bytes, Optional[str], Optional[str]]:
    if fmt == "csv":
        sep = out_cfg.get("sep", ",")
        compression = (out_cfg.get("compression") or "").lower()
        csv_text = stringify_non_scalars(df).to_csv(index=False, sep=sep)
        raw = csv_text.encode("utf-8")
        if compression == "gzip":
            buf = BytesIO()
            with gzip.GzipFile(fileobj=buf, mode="wb") as gz:
                gz.write(raw)
            return buf.getvalue(), "text/csv", "gzip"
        return raw, "text/csv", None

    if fmt == "jsonl":
        if df.empty:
            return b"", "application/x-ndjson", None
        text = df.to_json(orient="records", lines=True, date_format="iso")
        return text.encode("utf-8"), "application/x-ndjson", None

    if fmt == "parquet":
        compression = out_cfg.get("compression", "snappy")
        if isinstance(compression, str) and compression.lower() == "none":
            compression = None
        buf = BytesIO()
        stringify_non_scalars(df).to_parquet(
            buf, index=False, compression=compression
        )
        return buf.getvalue(), "application/vnd.apache.parquet", None

    raise ValueError(f"Unsupported format: {fmt}")


def _context_vars(ctx: Dict[str, Any]) -> Dict[str, Any]:
    now = pd.Timestamp.now(tz="UTC").to_pydatetime()
    return {
        "resource": ctx.get("resource", ""),
        "env": ctx.get("env", ""),
        "now": now,
        "today": now,
    }


def write_file(
    ctx: Dict[str, Any], df: pd.DataFrame, fmt: str, out_cfg: Dict[str, Any]
) -> Dict[str, Any]:
    path = Path(str(out_cfg["path"]).format(**_context_vars(ctx)))
    body, _, _ = serialize_df(df, fmt, out_cfg)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(body)
    meta = {
        "format": fmt,
        "destination": str(path),
        "bytes": int(len(body)),
        "rows": int(len(df)),
    }
    ctx["log"].info(
        f"[output] Wrote {len(df)} rows ({meta['bytes']} bytes) to {meta['destination']}"
    )
    return meta


def write_s3(
    ctx: Dict[str, Any], df: pd.DataFrame, fmt: str, s3_cfg: Dict[str, Any]
) -> Dict[str, Any]:
    try:
        import boto3
    except ImportError as e:
        raise RuntimeError("boto3 is required for S3 output.") from e

    context_vars = _context_vars(ctx)

    bucket = (s3_cfg.get("bucket") or "").strip()
    if not bucket:
        raise ValueError("output.s3.bucket is required.")

    prefix = (s3_cfg.get("prefix") or "").format(**context_vars).strip("/")
    default_fname = "{resource}-{now:%Y%m%dT%H%M%SZ}." + FORMATS[fmt]
    filename = (s3_cfg.get("filename") or default_fname).format(**context_vars)
    key = "/".join([p for p in [prefix, filename] if p])

    region_name = s3_cfg.get("region_name")
    session = (
        boto3.session.Session(region_name=region_name)
        if region_name
        else boto3.session.Session()
    )
    s3 = session.client("s3", endpoint_url=s3_cfg.get("endpoint_url"))

    extra_args = {}
    if s3_cfg.get("sse"):
        extra_args["ServerSideEncryption"] = s3_cfg["sse"]
    if s3_cfg.get("sse_kms_key_id"):
        extra_args["SSEKMSKeyId"] = s3_cfg["sse_kms_key_id"]

    body, content_type, content_encoding = serialize_df(df, fmt, s3_cfg)
    if content_type:
        extra_args["ContentType"] = content_type
    if content_encoding:
        extra_args["ContentEncoding"] = content_encoding

    s3.put_object(Bucket=bucket, Key=key, Body=body, **extra_args)

    meta = {
        "format": fmt,
        "destination": f"s3://{bucket}/{key}",
        "bytes": int(len(body)),
        "rows": int(len(df)),
    }
    ctx["log"].info(
        f"[output] Wrote {len(df)} rows ({meta['bytes']} bytes) to {meta['destination']}"
    )
    return meta


def write_output(
    ctx: Dict[str, Any], df: pd.DataFrame, out_cfg: Dict[str, Any]
) -> Dict[str, Any]:
    fmt = (out_cfg.get("format") or "csv").lower()
    if fmt not in FORMATS:
        raise ValueError(f"Unsupported output.format: {fmt}")

    if out_cfg.get("s3"):
        return write_s3(ctx, df, fmt, {**out_cfg, **out_cfg["s3"]})
    if out_cfg.get("path"):
        return write_file(ctx, df, fmt, out_cfg)
    raise ValueError("Output needs either output.path or output.s3.bucket.")
