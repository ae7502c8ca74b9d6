"""
Model Summary Report Generator for the Loan Loss Predictor.

Writes a PDF summarizing an LGD/PD pipeline run: data sizes, variance
filtering, cross-validated penalties, holdout metrics and the strongest
coefficients of each model.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

import pandas as pd
from fpdf import FPDF
from fpdf.enums import XPos, YPos


class ModelReport(FPDF):
    """Custom PDF class with header and footer."""

    TITLE = 'Loan Loss Predictor | Model Summary'

    def __init__(self):
        super().__init__()
        self.set_auto_page_break(auto=True, margin=20)

    def header(self):
        """Add header with title bar."""
        self.set_fill_color(25, 55, 95)  # Dark blue
        self.rect(0, 0, 210, 18, 'F')

        self.set_font('Helvetica', 'B', 10)
        self.set_text_color(255, 255, 255)
        self.set_xy(10, 6)
        self.cell(0, 6, self.TITLE, align='L')

        # Reset for body
        self.set_text_color(0, 0, 0)
        self.ln(20)

    def footer(self):
        """Add footer with page number and generation date."""
        self.set_y(-15)
        self.set_font('Helvetica', 'I', 8)
        self.set_text_color(128, 128, 128)
        self.cell(0, 10, f'Page {self.page_no()}/{{nb}}', align='C')
        self.set_x(10)
        self.cell(0, 10, f'Generated {datetime.now().strftime("%Y-%m-%d")}', align='L')

    def section_title(self, title: str, color: tuple = (25, 55, 95)):
        """Add a styled section title."""
        self.set_font('Helvetica', 'B', 12)
        self.set_text_color(*color)
        self.cell(0, 8, title, align='L', new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self.set_draw_color(*color)
        self.set_line_width(0.5)
        self.line(10, self.get_y(), 200, self.get_y())
        self.ln(4)
        self.set_text_color(0, 0, 0)

    def subsection_title(self, title: str):
        """Add a subsection title."""
        self.set_font('Helvetica', 'B', 10)
        self.set_text_color(60, 60, 60)
        self.cell(0, 6, title, align='L', new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self.set_text_color(0, 0, 0)
        self.ln(1)

    def body_text(self, text: str):
        """Add body text."""
        self.set_font('Helvetica', '', 10)
        self.multi_cell(0, 5, text, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self.ln(2)

    def key_value_rows(self, rows: Iterable[tuple], key_width: int = 70):
        """Add a two-column block of labels and values."""
        for key, value in rows:
            self.set_font('Helvetica', 'B', 9)
            self.cell(key_width, 5, str(key))
            self.set_font('Helvetica', '', 9)
            self.cell(0, 5, str(value), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self.ln(2)

    def table(self, df: pd.DataFrame, col_widths: Optional[list] = None):
        """Add a simple table from a DataFrame."""
        if col_widths is None:
            col_widths = [190 / len(df.columns)] * len(df.columns)

        self.set_font('Helvetica', 'B', 9)
        self.set_fill_color(230, 236, 245)
        for width, col in zip(col_widths, df.columns):
            self.cell(width, 6, str(col), border=1, fill=True)
        self.ln()

        self.set_font('Helvetica', '', 9)
        for _, row in df.iterrows():
            for width, value in zip(col_widths, row):
                text = f'{value:.4f}' if isinstance(value, float) else str(value)
                self.cell(width, 5, text, border=1)
            self.ln()
        self.ln(3)


def _fmt(value: Any, digits: int = 4) -> str:
    if isinstance(value, float):
        return f'{value:.{digits}f}'
    return str(value)


def _add_model_section(pdf: ModelReport, name: str, result: Dict[str, Any], top_n: int) -> None:
    pdf.section_title(name)

    preprocessing = result.get('preprocessing', {})
    train_metrics = result.get('train_metrics', {})
    holdout = result.get('holdout', {})

    pdf.subsection_title('Data and feature filtering')
    pdf.key_value_rows([
        ('Training rows used', train_metrics.get('n_samples', 'N/A')),
        ('Features retained', preprocessing.get('n_retained', 'N/A')),
        ('Dropped (all missing)', preprocessing.get('n_dropped_all_missing', 'N/A')),
        ('Dropped (near-zero variance)', preprocessing.get('n_dropped_near_zero_variance', 'N/A')),
        ('Predictors selected', train_metrics.get('n_features_selected', 'N/A')),
    ])

    pdf.subsection_title('Cross-validated fit')
    pdf.key_value_rows([(k, _fmt(v)) for k, v in train_metrics.items()
                        if k not in ('n_samples', 'n_features_selected', 'n_features_retained')])

    pdf.subsection_title('Holdout evaluation')
    pdf.key_value_rows([(k, _fmt(v)) for k, v in holdout.items()
                        if not isinstance(v, pd.DataFrame) and v is not None])

    confusion = holdout.get('confusion_matrix')
    if isinstance(confusion, pd.DataFrame):
        pdf.subsection_title('Confusion matrix')
        pdf.table(confusion.reset_index().rename(columns={'index': ''}))

    coefficients = result.get('coefficients')
    if isinstance(coefficients, pd.DataFrame) and not coefficients.empty:
        pdf.subsection_title(f'Top {min(top_n, len(coefficients))} coefficients')
        pdf.table(coefficients[['rank', 'feature', 'coefficient']].head(top_n),
                  col_widths=[20, 90, 80])

    if result.get('output_path'):
        pdf.body_text(f"Predictions written to {result['output_path']} "
                      f"({result.get('n_scored', 'N/A')} records).")


def generate_report(
    results: Dict[str, Dict[str, Any]],
    output_path: Union[str, Path],
    top_n: int = 10
) -> Path:
    """
    Generate the model summary PDF.

    Args:
        results: Mapping with optional 'lgd' and 'pd' entries as returned by
                 the pipeline run functions.
        output_path: PDF destination.
        top_n: Coefficients listed per model.

    Returns:
        Path of the written PDF.

    Raises:
        ValueError: If results contain neither an LGD nor a PD run.
    """
    if not any(key in results for key in ('lgd', 'pd')):
        raise ValueError("Results must contain an 'lgd' or 'pd' entry")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    pdf = ModelReport()
    pdf.alias_nb_pages()
    pdf.add_page()

    pdf.section_title('Overview')
    pdf.body_text(
        'Loss Given Default is fitted with cross-validated elastic-net regression on '
        'defaulted loans. Probability of Default is fitted with cross-validated '
        'elastic-net logistic regression on all loans. Both models use median '
        'imputation, standardization and coefficient-magnitude predictor selection '
        'after near-zero-variance filtering.'
    )

    if 'lgd' in results:
        _add_model_section(pdf, 'Loss Given Default (LGD)', results['lgd'], top_n)
    if 'pd' in results:
        pdf.add_page()
        _add_model_section(pdf, 'Probability of Default (PD)', results['pd'], top_n)

    pdf.output(str(output_path))
    return output_path


if __name__ == "__main__":
    from loan_loss.config import PipelineConfig
    from loan_loss.pipeline import run

    config = PipelineConfig.from_env(generate_report=True)
    run(config)
