import pandas as pd
import pytest

from src.models.growth.who_extract_lms import classify_file, convert, guess_sex, guess_table, main

WFA_HEADER = "Month\tL\tM\tS\tSD3neg\tSD2neg\tSD0\n"


def _write_txt(path, header, rows):
    path.write_text(header + "".join("\t".join(str(v) for v in r) + "\n" for r in rows))
    return path


class TestFileNames:
    @pytest.mark.parametrize(
        "name,table,sex",
        [
            ("wfa_boys_0-to-5-years_zscores.txt", "wfa", "M"),
            ("lhfa_girls_0-to-5-years_zscores.txt", "hfa", "F"),
            ("hcfa-boys-0-5-zscore-expanded-tables.xlsx", "hcfa", "M"),
            ("wfl_girls_0-to-2-years_zscores.txt", "wfl", "F"),
            ("wfh_boys_2-to-5-years_zscores.txt", "wfh", "M"),
            ("Weight-for-age_Female.xlsx", "wfa", "F"),
        ],
    )
    def test_classify(self, tmp_path, name, table, sex):
        src = classify_file(tmp_path / name)
        assert (src.table, src.sex) == (table, sex)

    def test_unknown_sex(self, tmp_path):
        assert guess_sex("wfa_0-to-5-years.txt") is None
        with pytest.raises(ValueError, match="sex"):
            classify_file(tmp_path / "wfa_0-to-5-years.txt")

    def test_unknown_table(self):
        assert guess_table("bmi_boys.txt") is None


class TestConvert:
    def test_converts_monthly_txt(self, tmp_path):
        raw = tmp_path / "raw"
        raw.mkdir()
        _write_txt(
            raw / "wfa_boys_0-to-5-years_zscores.txt",
            WFA_HEADER,
            [(1, 0.2297, 4.4709, 0.13395, 2.9, 3.4, 4.5), (0, 0.3487, 3.3464, 0.14602, 2.1, 2.5, 3.3)],
        )
        _write_txt(
            raw / "wfa_girls_0-to-5-years_zscores.txt",
            WFA_HEADER,
            [(0, 0.3809, 3.2322, 0.14171, 2.0, 2.4, 3.2)],
        )

        written = convert(raw, tmp_path / "out")
        assert set(written) == {"wfa"}
        df = pd.read_csv(written["wfa"])
        assert list(df.columns) == ["sex", "x", "L", "M", "S"]
        assert df["sex"].tolist() == ["F", "M", "M"]
        assert df["x"].tolist() == [0, 0, 1]
        assert df.loc[1, "M"] == pytest.approx(3.3464)

    def test_drops_rows_outside_table_domain(self, tmp_path):
        raw = tmp_path / "raw"
        raw.mkdir()
        rows = [(x, -0.3521, 2.0 + x / 100, 0.09, 1, 1, 1) for x in (44.5, 45.0, 45.5)]
        _write_txt(raw / "wfl_boys_0-to-2-years_zscores.txt", "Length\tL\tM\tS\tSD3neg\tSD2neg\tSD0\n", rows)
        written = convert(raw, tmp_path / "out")
        assert pd.read_csv(written["wfl"])["x"].tolist() == [45.0, 45.5]

    def test_day_indexed_table_is_rejected(self, tmp_path):
        raw = tmp_path / "raw"
        raw.mkdir()
        _write_txt(raw / "wfa_girls_day.txt", "Day\tL\tM\tS\n", [(0, 0.38, 3.23, 0.14)])
        with pytest.raises(ValueError, match="day"):
            convert(raw, tmp_path / "out")

    def test_missing_raw_dir(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            convert(tmp_path / "missing", tmp_path / "out")

    def test_empty_raw_dir(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            convert(tmp_path, tmp_path / "out")

    def test_main(self, tmp_path):
        raw = tmp_path / "raw"
        raw.mkdir()
        _write_txt(raw / "hcfa_girls_0-to-5-years_zscores.txt", WFA_HEADER, [(0, 1, 33.8787, 0.03496, 1, 1, 1)])
        main([str(raw), str(tmp_path / "out")])
        assert (tmp_path / "out" / "hcfa_lms.csv").exists()
