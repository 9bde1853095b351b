"""
ProofChain CLI Main
===================

CLIエントリーポイント
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.markdown import Markdown
from rich.panel import Panel

from src.service.review import ReviewService, ServiceResponse
from src.shared.logging import configure_logging


# ==============================================
# Typer App
# ==============================================

app = typer.Typer(
    name="proofchain",
    help="ProofChain - AI核稿パイプライン",
    add_completion=False,
)

console = Console()


# ==============================================
# Review Commands
# ==============================================

@app.command("review")
def review_text(
    file: Path = typer.Argument(..., help="核稿対象のテキストファイル"),
    plugins: Optional[list[str]] = typer.Option(
        None,
        "--plugin", "-p",
        help="チェッカー種別（複数指定可、指定順に実行）",
    ),
    model: Optional[str] = typer.Option(
        None,
        "--model", "-m",
        help="既定のバックエンドID (gemini / deepseek)",
    ),
    personnel_url: Optional[str] = typer.Option(
        None,
        "--personnel-url",
        help="人員名簿ソースURL",
    ),
    local_roster: Optional[Path] = typer.Option(
        None,
        "--local-roster",
        help="ローカル名簿ファイル（1行1名: 氏名 - 職務）",
    ),
    continue_on_error: bool = typer.Option(
        False,
        "--continue-on-error",
        help="ステージ失敗後も後続チェッカーを実行",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="結果出力ファイル（省略時は標準出力）",
    ),
    format: str = typer.Option(
        "markdown",
        "--format", "-f",
        help="出力形式 (json / markdown)",
    ),
) -> None:
    """
    テキストを核稿する
    """
    # ファイル存在確認
    if not file.exists():
        console.print(f"[red]エラー: ファイルが見つかりません: {file}[/red]")
        raise typer.Exit(2)

    if local_roster is not None and not local_roster.exists():
        console.print(f"[red]エラー: 名簿ファイルが見つかりません: {local_roster}[/red]")
        raise typer.Exit(2)

    text = file.read_text(encoding="utf-8")

    options: dict[str, Any] = {}
    if personnel_url:
        options["personnelApiUrl"] = personnel_url
    if local_roster is not None:
        options["useLocalPersonnel"] = True
        options["localPersonnelData"] = local_roster.read_text(encoding="utf-8")
    if continue_on_error:
        options["stopOnError"] = False

    body: dict[str, Any] = {
        "text": text,
        "plugins": [{"type": p, "options": dict(options)} for p in plugins or []],
    }
    if model:
        body["config"] = {"defaultModel": model}

    configure_logging(level="WARNING")

    # 核稿実行
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("核稿実行中...", total=None)
        response = asyncio.run(_run_review(body))
        progress.update(task, completed=True)

    # 結果出力
    if format == "json":
        output_content = json.dumps(response.body, ensure_ascii=False, indent=2)
    else:
        output_content = _format_result_markdown(response)

    if output:
        output.write_text(output_content, encoding="utf-8")
        console.print(f"[green]結果を保存しました: {output}[/green]")
    else:
        if format == "markdown":
            console.print(Markdown(output_content))
        else:
            console.print(output_content)

    # 終了コード設定
    if response.status_code == 422:
        raise typer.Exit(1)
    elif response.status_code != 200:
        raise typer.Exit(2)


async def _run_review(body: dict[str, Any]) -> ServiceResponse:
    """核稿実行（非同期）"""
    service = ReviewService()
    response = await service.review(body)
    await service.notifier.drain()
    return response


def _format_result_markdown(response: ServiceResponse) -> str:
    """結果をMarkdown形式でフォーマット"""
    body = response.body or {}
    data = body.get("data")
    if not data:
        return "\n".join([
            "# 核稿結果",
            "",
            f"- **ステータス**: {response.status_code}",
            f"- **エラー**: {body.get('error', '')}",
        ])

    metadata = data.get("metadata", {})
    lines = [
        "# 核稿結果",
        "",
        f"- **ステータス**: {response.status_code}",
        f"- **実行状態**: {metadata.get('state', '')}",
        f"- **実行チェッカー数**: {metadata.get('executedPlugins', 0)} / {metadata.get('totalPlugins', 0)}",
        "",
    ]

    if body.get("errors"):
        lines.append("## エラー")
        lines.append("")
        for error in body["errors"]:
            lines.append(f"- ステージ{error['stageIndex']} {error['pluginName']}: {error['errorMessage']}")
        lines.append("")

    for result in data.get("results", []):
        lines.append(f"## {result['pluginName']}")
        lines.append("")
        summary = result.get("metadata", {}).get("summary")
        if summary:
            lines.append(f"- 概要: {summary}")
        if result["changes"]:
            lines.append("- 指摘事項:")
            for change in result["changes"]:
                lines.append(f"  - [{change['severity']}] {change['position']} {change['description']}")
                if change["original"] or change["revised"]:
                    lines.append(f"    - {change['original']} → {change['revised']}")
        else:
            lines.append("- 指摘事項なし")
        lines.append("")

    lines.append("## 修正後テキスト")
    lines.append("")
    lines.append(data.get("finalText", ""))
    return "\n".join(lines)


# ==============================================
# Checker / Model Commands
# ==============================================

@app.command("checkers")
def list_checkers(
    format: str = typer.Option(
        "table",
        "--format", "-f",
        help="出力形式 (table / json)",
    ),
) -> None:
    """
    チェッカー一覧を表示
    """
    items = ReviewService().list_plugins().body["data"]

    if format == "json":
        print(json.dumps(items, ensure_ascii=False, indent=2))
        return

    table = Table(title="チェッカー一覧")
    table.add_column("種別", style="cyan")
    table.add_column("名前", style="green")
    table.add_column("説明")
    table.add_column("設定項目")

    for item in items:
        table.add_row(
            item["type"],
            item["name"],
            item["description"],
            ", ".join(item["configOptions"]),
        )

    console.print(table)
    console.print(f"\n合計: {len(items)} 件")


@app.command("models")
def list_models() -> None:
    """
    AIバックエンド一覧を表示
    """
    models = ReviewService().list_models().body["data"]

    table = Table(title="AIバックエンド")
    table.add_column("ID", style="cyan")
    table.add_column("名前")
    table.add_column("APIキー")

    for model in models:
        status = "[green]設定済み[/green]" if model["hasApiKey"] else "[dim]未設定[/dim]"
        table.add_row(model["id"], model["name"], status)

    console.print(table)


# ==============================================
# Version Command
# ==============================================

@app.command("version")
def show_version() -> None:
    """
    バージョン情報を表示
    """
    console.print(Panel(
        "[cyan]ProofChain[/cyan] v1.0.0\n"
        "AI核稿パイプライン",
        title="ProofChain",
    ))


# ==============================================
# Entry Point
# ==============================================

def cli() -> None:
    """CLIエントリーポイント"""
    app()


if __name__ == "__main__":
    cli()
