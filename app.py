"""
UPA Areal - Acolhimento & Classificação de Risco
Triage dashboard: daily patient counts by risk color.

Layout:
- Sidebar with month filter, edit actions and AI status
- Dashboard view (KPIs, charts, monthly totals, history, exports)
- Comparison view (multi-day chart + PDF)
- Smart features (assistant chat, report photo analysis, image studio)

The whole dataset lives in the `data` query parameter, so the current URL
is always a shareable copy of the panel.
"""

import hashlib
import os
from datetime import date
from typing import List, Optional, Tuple

import streamlit as st

from src.data_loader import load_default_records, parse_extracted_record, record_counts_summary
from src.dashboard_state import DashboardState, get_state
from src.dashboard_metrics import (
    available_months,
    category_shares,
    comparison_records,
    day_over_day,
    filter_month,
    format_br_date,
    history_rows,
    last_record,
    month_key,
    month_label,
    monthly_totals,
    peak_and_low,
    records_context,
)
from src.charts import comparison_figure, daily_breakdown_figure, trend_figure
from src.export_engine import (
    EXCEL_FILENAME,
    EXCEL_MIME,
    PDF_FILENAME,
    PDF_MIME,
    build_comparison_pdf,
    build_records_excel,
)
from src.edit_lock import check_passphrase, edit_lock_enabled
from src.gemini_engine import (
    GREETING,
    IMAGE_SIZES,
    analyze_triage_image,
    chat_with_gemini,
    edit_image,
    generate_image,
    get_availability_message,
    get_fast_insight,
    is_gemini_available,
)
from src.state_codec import build_share_url
from src.triage_records import RISK_CATEGORIES, make_record
from src.ui_utils import render_records_timeline

SHORTENER_URL = "https://www.encurtador.com.br/"


# =============================================================================
# Page config
# =============================================================================

st.set_page_config(
    page_title="UPA Areal | Classificação de Risco",
    page_icon="🏥",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown(
    """
<style>
.block-container {
    padding-top: 1.5rem !important;
    max-width: 1400px;
}

/* Header banner */
.upa-header {
  text-align: center;
  padding: 28px 16px 22px 16px;
  border-radius: 14px;
  margin-bottom: 18px;
  background: radial-gradient(ellipse at top, #1e293b 0%, #0f172a 60%, #000 100%);
  border: 1px solid rgba(255,255,255,0.08);
}
.upa-header h1 {
  margin: 0;
  font-size: 2.6rem;
  font-weight: 900;
  letter-spacing: -1px;
  color: white;
}
.upa-header h1 span { color: #38bdf8; }
.upa-header p {
  margin: 6px 0 0 0;
  font-size: 0.72rem;
  font-weight: 700;
  letter-spacing: 0.3em;
  text-transform: uppercase;
  color: #dbeafe;
  opacity: 0.8;
}

/* Risk cards */
.risk-card {
  padding: 12px 14px;
  border-radius: 10px;
  border-left: 5px solid;
  background: rgba(148, 163, 184, 0.08);
  margin-bottom: 6px;
}
.risk-label {
  font-size: 0.72rem;
  font-weight: 700;
  text-transform: uppercase;
  letter-spacing: 0.8px;
}
.risk-value { font-size: 1.9rem; font-weight: 800; }
.muted { opacity: 0.7; font-size: 0.85rem; }

/* Peak / low */
.stat-card {
  padding: 16px 18px;
  border-radius: 12px;
  color: white;
}
.stat-card.peak { background: linear-gradient(135deg, #9333ea 0%, #4338ca 100%); }
.stat-card.low { background: linear-gradient(135deg, #0d9488 0%, #047857 100%); }
.stat-card .stat-title {
  font-size: 0.7rem;
  font-weight: 700;
  text-transform: uppercase;
  letter-spacing: 1px;
  opacity: 0.8;
}
.stat-card .stat-day { font-size: 1.4rem; font-weight: 700; }
.stat-card .stat-total { font-size: 2.2rem; font-weight: 800; }

.section-spacer { height: 20px; }
</style>
""",
    unsafe_allow_html=True,
)


# =============================================================================
# Data Loading
# =============================================================================

@st.cache_data(show_spinner=False)
def load_default_data():
    try:
        return load_default_records(), None
    except FileNotFoundError as e:
        return None, str(e)
    except ValueError as e:
        return None, f"Invalid default dataset: {e}"


# =============================================================================
# Utilities
# =============================================================================

def get_app_url() -> str:
    return os.environ.get("TRIAGE_APP_URL", "http://localhost:8501/")


def record_option_label(state: DashboardState, record_id: str) -> str:
    for r in state.records:
        if r.id == record_id:
            return f"{format_br_date(r.dia)} - Total {r.total}"
    return record_id


# =============================================================================
# Edit actions (behind the optional edit lock)
# =============================================================================

def request_action(state: DashboardState, action: str, record_id: Optional[str] = None):
    if state.unlocked or not edit_lock_enabled():
        run_action(state, action, record_id)
    else:
        auth_dialog(state, action, record_id)


def run_action(state: DashboardState, action: str, record_id: Optional[str] = None):
    if action == "add":
        entry_dialog(state)
    elif action == "share":
        share_dialog(state)
    elif action == "delete" and record_id:
        if state.delete_record(record_id):
            st.toast("Registro excluído")
        st.rerun()


@st.dialog("Acesso Restrito")
def auth_dialog(state: DashboardState, action: str, record_id: Optional[str] = None):
    st.caption("Digite a senha de edição do painel.")
    password = st.text_input("Senha", type="password", placeholder="Digite a Senha")

    col1, col2 = st.columns(2)
    with col1:
        if st.button("Sair", use_container_width=True):
            st.rerun()
    with col2:
        if st.button("Entrar", type="primary", use_container_width=True):
            if check_passphrase(password):
                state.unlocked = True
                if action != "unlock":
                    st.session_state["pending_action"] = (action, record_id)
                st.rerun()
            else:
                st.error("Senha incorreta")


@st.dialog("Novo Registro", width="large")
def entry_dialog(state: DashboardState):
    dia = st.date_input("Data do plantão", value=date.today(), format="DD/MM/YYYY")

    counts = {}
    cols = st.columns(len(RISK_CATEGORIES))
    for col, category in zip(cols, RISK_CATEGORIES):
        with col:
            counts[category["key"]] = st.number_input(
                category["label"], min_value=0, value=0, step=1, key=f"entry_{category['key']}"
            )

    st.metric("Total do dia", sum(counts.values()))

    if st.button("Salvar Dados", type="primary", use_container_width=True):
        record = make_record(dia.isoformat(), counts, existing_ids=state.record_ids)
        state.add_record(record)
        state.selected_month = month_key(record.dia)
        st.toast(f"Plantão de {format_br_date(record.dia)} salvo")
        st.rerun()


@st.dialog("Link de Acesso", width="large")
def share_dialog(state: DashboardState):
    st.caption(
        "Este link contém os dados atuais compactados. "
        "Utilize para espelhar este painel em outros dispositivos."
    )
    url = build_share_url(get_app_url(), state.records)
    st.code(url, language=None)
    if len(url) > 8000:
        st.warning("Link muito longo: alguns navegadores podem não abri-lo.")

    col1, col2 = st.columns(2)
    with col1:
        st.link_button("Encurtador", SHORTENER_URL, use_container_width=True)
    with col2:
        if st.button("Fechar Janela", use_container_width=True):
            st.rerun()


# =============================================================================
# UI Components
# =============================================================================

def render_header():
    st.markdown(
        """
<div class="upa-header">
  <h1>UPA <span>AREAL</span></h1>
  <p>Acolhimento &amp; Classificação de Risco</p>
</div>
""",
        unsafe_allow_html=True,
    )


def render_last_day(month_records):
    lastday = last_record(month_records)
    shares = category_shares(lastday)

    col_total, col_chart = st.columns([1, 2], gap="large")
    with col_total:
        st.markdown("### Último Registro")
        if lastday:
            st.metric(
                f"Total de {format_br_date(lastday.dia)}",
                lastday.total,
                delta=day_over_day(month_records),
            )
        else:
            st.info("Nenhum registro no mês selecionado.")
    with col_chart:
        st.plotly_chart(daily_breakdown_figure(lastday), use_container_width=True)

    cols = st.columns(len(RISK_CATEGORIES))
    for col, category in zip(cols, RISK_CATEGORIES):
        value = getattr(lastday, category["key"]) if lastday else 0
        with col:
            st.markdown(
                f"""
<div class="risk-card" style="border-left-color: {category['color']};">
  <div class="risk-label" style="color: {category['color']};">{category['label']}</div>
  <div class="risk-value">{value}</div>
  <div class="muted">{shares[category['key']]:.1f}% do dia</div>
</div>
""",
                unsafe_allow_html=True,
            )
            st.progress(min(shares[category["key"]] / 100, 1.0))
            with st.expander("O que significa?"):
                st.caption(category["description"])


def render_peak_low(month_records):
    peak, low = peak_and_low(month_records)
    col1, col2 = st.columns(2)
    for col, css, title, record in (
        (col1, "peak", "Pico de Movimento", peak),
        (col2, "low", "Menor Movimento", low),
    ):
        with col:
            st.markdown(
                f"""
<div class="stat-card {css}">
  <div class="stat-title">{title}</div>
  <div class="stat-day">{format_br_date(record.dia) if record else '--/--/----'}</div>
  <div class="stat-total">{record.total if record else 0}</div>
</div>
""",
                unsafe_allow_html=True,
            )


def render_monthly_totals(month_records, selected_month: str):
    totals = monthly_totals(month_records)
    title = month_label(selected_month) if selected_month else "todo o período"
    st.markdown(f"### Acumulado do Mês ({title})")
    cols = st.columns(len(RISK_CATEGORIES) + 1)
    with cols[0]:
        st.metric("Total", totals["total"])
    for col, category in zip(cols[1:], RISK_CATEGORIES):
        with col:
            st.metric(category["label"], totals[category["key"]])


def render_history(state: DashboardState, month_records):
    header_left, header_right = st.columns([3, 1])
    with header_left:
        st.markdown("### Histórico de Registros")
    with header_right:
        st.download_button(
            "Excel",
            data=build_records_excel(state.records),
            file_name=EXCEL_FILENAME,
            mime=EXCEL_MIME,
            use_container_width=True,
        )

    rows = history_rows(month_records)
    if not rows:
        st.caption("Nenhum registro no período.")
        return

    widths = [2] + [1] * len(RISK_CATEGORIES) + [1, 1]
    header = st.columns(widths)
    for col, name in zip(header, ["Data"] + [c["short"] for c in RISK_CATEGORIES] + ["Total", ""]):
        col.markdown(f"**{name}**")

    for r in rows:
        cols = st.columns(widths)
        cols[0].write(format_br_date(r.dia))
        for col, category in zip(cols[1:], RISK_CATEGORIES):
            col.write(getattr(r, category["key"]))
        cols[-2].write(f"**{r.total}**")
        if cols[-1].button("🗑", key=f"del_{r.id}", help="Excluir registro"):
            request_action(state, "delete", r.id)


# =============================================================================
# Views
# =============================================================================

def render_dashboard(state: DashboardState):
    month_records = filter_month(state.records, state.selected_month)

    render_last_day(month_records)
    st.markdown("<div class='section-spacer'></div>", unsafe_allow_html=True)

    st.plotly_chart(trend_figure(month_records), use_container_width=True)

    render_peak_low(month_records)
    st.markdown("<div class='section-spacer'></div>", unsafe_allow_html=True)

    render_monthly_totals(month_records, state.selected_month)
    st.markdown("<div class='section-spacer'></div>", unsafe_allow_html=True)

    render_history(state, month_records)

    with st.expander("Linha do tempo", expanded=False):
        render_records_timeline(month_records)

    if is_gemini_available() and month_records:
        if st.button("Resumo rápido da carga de trabalho"):
            with st.spinner("Gerando insight..."):
                st.info(get_fast_insight(records_context(month_records)))


def render_comparison(state: DashboardState):
    st.subheader("Comparativo Multi-Datas")

    options = [r.id for r in history_rows(state.records)]
    state.comparison_ids = st.multiselect(
        "Selecione os plantões",
        options=options,
        default=[i for i in state.comparison_ids if i in options],
        format_func=lambda record_id: record_option_label(state, record_id),
    )

    selected = comparison_records(state.records, state.comparison_ids)
    if not selected:
        st.info("Escolha os plantões para visualizar o gráfico.")
        return

    st.plotly_chart(comparison_figure(selected), use_container_width=True)

    cols = st.columns(2)
    for i, r in enumerate(selected):
        with cols[i % 2]:
            with st.container(border=True):
                st.markdown(f"**{format_br_date(r.dia)}** | TOTAL: {r.total}")
                inner = st.columns(len(RISK_CATEGORIES))
                for col, category in zip(inner, RISK_CATEGORIES):
                    col.metric(category["short"], getattr(r, category["key"]))

    st.download_button(
        "Exportar PDF",
        data=build_comparison_pdf(selected),
        file_name=PDF_FILENAME,
        mime=PDF_MIME,
    )


def render_chat(state: DashboardState):
    if not state.chat_history:
        state.chat_history.append({"role": "model", "text": GREETING})

    col1, col2 = st.columns(2)
    with col1:
        use_search = st.toggle("Pesquisa Google", value=False)
    with col2:
        use_thinking = st.toggle("Raciocínio estendido", value=False)

    for msg in state.chat_history:
        with st.chat_message("assistant" if msg["role"] == "model" else "user"):
            st.markdown(msg["text"])
            for source in msg.get("sources", []):
                st.markdown(f"- [{source['title']}]({source['uri']})")

    prompt = st.chat_input("Digite sua mensagem...")
    if prompt and prompt.strip():
        history = list(state.chat_history)
        state.chat_history.append({"role": "user", "text": prompt})
        with st.spinner("Pensando..."):
            reply = chat_with_gemini(prompt, history, use_search, use_thinking)
        if reply:
            state.chat_history.append({
                "role": "model",
                "text": reply.text or "Desculpe, não consegui gerar uma resposta.",
                "sources": reply.sources,
                "thinking": reply.thinking,
            })
        else:
            state.chat_history.append({"role": "model", "text": "Erro ao conectar com o servidor."})
        st.rerun()


def render_analyzer(state: DashboardState):
    st.caption(
        "Tire uma foto de um relatório de triagem manual e o Gemini "
        "extrairá os dados automaticamente para o painel."
    )
    if edit_lock_enabled() and not state.unlocked:
        st.warning("Importar dados exige a senha de edição.")
        if st.button("Desbloquear edição"):
            auth_dialog(state, "unlock")
        return

    upload = st.file_uploader("Foto do relatório", type=["png", "jpg", "jpeg", "webp"])
    if not upload:
        return

    image_bytes = upload.getvalue()
    upload_hash = hashlib.md5(image_bytes).hexdigest()
    if upload_hash == state.last_upload_hash:
        return

    with st.spinner("Analisando imagem..."):
        answer = analyze_triage_image(image_bytes, upload.type or "image/jpeg")

    if answer is None:
        st.error("Erro ao analisar imagem.")
        return

    try:
        record = parse_extracted_record(answer, existing_ids=state.record_ids)
    except ValueError:
        st.error("Erro ao processar os dados da imagem. Tente uma imagem mais clara.")
        return

    state.add_record(record)
    state.last_upload_hash = upload_hash
    state.selected_month = month_key(record.dia)
    st.success(f"Dados importados com sucesso! ({format_br_date(record.dia)}, total {record.total})")


def render_studio():
    mode = st.radio("Modo", ["Gerar", "Editar"], horizontal=True)

    base_image = None
    base_mime = "image/jpeg"
    if mode == "Gerar":
        size = st.selectbox("Resolução", IMAGE_SIZES)
    else:
        upload = st.file_uploader("Imagem base", type=["png", "jpg", "jpeg", "webp"], key="studio_base")
        if upload:
            base_image = upload.getvalue()
            base_mime = upload.type or base_mime
            st.image(base_image, width=320)

    placeholder = "Descreva a imagem..." if mode == "Gerar" else "O que mudar na imagem? (ex: Adicionar filtro retrô)"
    prompt = st.text_area("Prompt", placeholder=placeholder)

    if st.button("Criar", type="primary", disabled=not prompt or (mode == "Editar" and base_image is None)):
        with st.spinner("Processando..."):
            if mode == "Gerar":
                result = generate_image(prompt, size)
            else:
                result = edit_image(base_image, base_mime, prompt)
        if result:
            st.session_state["studio_result"] = result
        else:
            st.error("Erro ao gerar imagem" if mode == "Gerar" else "Erro ao editar imagem")

    result = st.session_state.get("studio_result")
    if result:
        st.image(result, use_container_width=True)
        st.download_button("Baixar imagem", data=result, file_name="imagem_gemini.png", mime="image/png")


def render_smart_features(state: DashboardState):
    st.subheader("Recursos Inteligentes")
    if not is_gemini_available():
        st.warning(get_availability_message())
        st.caption("Recursos de IA desativados")
        return

    chat_tab, analyze_tab, studio_tab = st.tabs(["Assistente", "Analisar", "Studio"])
    with chat_tab:
        render_chat(state)
    with analyze_tab:
        render_analyzer(state)
    with studio_tab:
        render_studio()


def main():
    render_header()

    default_records, error = load_default_data()
    if error:
        st.error(f"Data Loading Error: {error}")
        st.stop()

    state = get_state(st.session_state, st.query_params, default_records)

    if state.load_result is not None and not state.load_result.ok:
        st.warning("O link compartilhado não pôde ser lido. Exibindo os dados padrão.")

    pending: Optional[Tuple[str, Optional[str]]] = st.session_state.pop("pending_action", None)
    if pending:
        run_action(state, *pending)

    # Sidebar
    with st.sidebar:
        st.markdown("### Painel")

        view_mode = st.radio(
            "View Mode",
            ["Dashboard", "Comparar Dias", "Recursos Inteligentes"],
            label_visibility="collapsed",
        )

        st.markdown("---")

        months: List[str] = available_months(state.records)
        if months:
            if state.selected_month not in months:
                state.selected_month = months[-1]
            state.selected_month = st.selectbox(
                "Mês",
                options=months,
                index=months.index(state.selected_month),
                format_func=month_label,
            )
        else:
            state.selected_month = ""

        if st.button("Inserir Dados", type="primary", use_container_width=True):
            request_action(state, "add")
        if st.button("Compartilhar", use_container_width=True):
            request_action(state, "share")

        st.markdown("---")

        summary = record_counts_summary(state.records)
        st.caption("**Status**")
        st.markdown(f"Plantões registrados: {summary['records']}")
        st.markdown(f"Atendimentos: {summary['patients']}")
        st.caption(get_availability_message())

        st.markdown("---")
        st.caption("Desenvolvido por Samuel Amaro")

    if view_mode == "Dashboard":
        render_dashboard(state)
    elif view_mode == "Comparar Dias":
        render_comparison(state)
    elif view_mode == "Recursos Inteligentes":
        render_smart_features(state)

    state.sync_query_params(st.query_params)


if __name__ == "__main__":
    main()
