import os
import tempfile

import pandas as pd

from sheetmerge.merge.engine import MergeEngine
from sheetmerge.models import MergeStrategy

KEY_COUNT = 300


def _build_dataframe(prefix: str, header: str, repeat_every: int) -> pd.DataFrame:
    rows = [["Código Cliente", f"{header} A", f"{header} B"]]
    for i in range(KEY_COUNT):
        rows.append([f"C{i:04d}", f"{prefix}{i}", i * 1.5])
        if i % repeat_every == 0:
            rows.append([f"C{i:04d}", f"{prefix}{i}-dup", None])
        if i % 17 == 0:
            rows.append([None, "sin clave", i])
    return pd.DataFrame(rows)


def main() -> None:
    with tempfile.TemporaryDirectory() as tmpdir:
        inputs = []
        for name, header, repeat_every in [("ventas", "Venta", 5), ("stock", "Stock", 7)]:
            path = os.path.join(tmpdir, f"{name}.xlsx")
            df = _build_dataframe(name[0], header, repeat_every)
            # Second sheet uses a differently written key header
            df_alt = df.copy()
            df_alt.iloc[0, 0] = " CODIGO  CLIENTE "
            with pd.ExcelWriter(path) as writer:
                df.to_excel(writer, sheet_name="Enero", index=False, header=False)
                df_alt.to_excel(writer, sheet_name="Febrero", index=False, header=False)
            inputs.append(path)

        engine = MergeEngine(chunk_size=64)
        outputs = {}
        for strategy in MergeStrategy:
            out = os.path.join(tmpdir, f"merged_{strategy.value}.xlsx")
            engine.merge_to_file(inputs, "codigo cliente", out, strategy=strategy)
            outputs[strategy] = pd.read_excel(out, dtype=object, keep_default_na=False)

        reference = outputs[MergeStrategy.BATCH]
        for strategy, df in outputs.items():
            assert list(df.columns) == list(reference.columns), strategy
            assert df.equals(reference), strategy

    # Key column + 2 value columns for each of 4 sheets
    assert len(reference.columns) == 1 + 4 * 2
    # A key duplicated in any sheet gets a second row
    duplicated = sum(1 for i in range(KEY_COUNT) if i % 5 == 0 or i % 7 == 0)
    assert len(reference) == KEY_COUNT + duplicated
    assert list(reference["Key"]) == sorted(reference["Key"])
    print("Merge smoke test passed for all strategies.")


if __name__ == "__main__":
    main()
