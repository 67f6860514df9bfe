# nachweis_check.py
# Contrôle **hebdomadaire** des Ausbildungsnachweise (semaines alignées sur le lundi)
# - Config JSON/YAML (pydantic) + création d'un exemple au premier lancement
# - Calcul de la semaine d'apprentissage
# - Chemin attendu par apprenti : <file_dir>/AN_<Nom>_<Prénom>_<NNN>.pdf
# - Vérification via l'API GitHub (contents) sur la branche configurée
# - Export JSON/Markdown optionnel dans <export-dir>/week_<NNN>

import asyncio
import json
import os
import stat
import sys
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import List, Optional, Dict, Any, Callable
from urllib.parse import quote
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import aiohttp
import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

APP_VENDOR = "NGITL"
APP_NAME = "Ausbildungsnachweise_Check"
CONFIG_FILENAME = "configuration.json"
DATE_FORMAT = "%Y-%m-%d"

PROMPT = "Enter number of report or press enter to continue with current week"

SAMPLE_CONFIG: Dict[str, Any] = {
    "github_token": "ghp_your_personal_access_token",
    "start_of_apprenticeship": "2023-09-01",
    "organization": "your-organization",
    "branch": "main",
    "file_dir": "Ausbildungsnachweise",
    "apprentices": [
        "Max Mustermann",
        "Erika Musterfrau",
    ],
}

# -----------------------
# Errors
# -----------------------

class ConfigError(RuntimeError):
    """Configuration illisible ou invalide (fatal)."""

class NameFormatError(ValueError):
    """Nom d'apprenti sans prénom + nom (fatal)."""

class GitHubError(RuntimeError):
    """Réponse inattendue de l'API GitHub (tout sauf 200 / 404)."""

    def __init__(self, status: int, message: str):
        super().__init__(f"GitHub API error {status}: {message}")
        self.status = status
        self.message = message

# -----------------------
# Models & Config
# -----------------------

def parse_start_date(text: str) -> date:
    try:
        return datetime.strptime(text, DATE_FORMAT).date()
    except (TypeError, ValueError):
        raise ConfigError(f"Unexpected date format: {text}") from None

class AppConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    github_token: str = ""
    github_token_env: Optional[str] = "GITHUB_TOKEN"
    start_of_apprenticeship: date
    organization: str
    branch: str
    file_dir: str
    apprentices: List[str]
    timezone: Optional[str] = None
    api_url: str = "https://api.github.com"
    timeout_sec: int = 20
    user_agent: str = "AusbildungsnachweiseCheck/1.0"

    @field_validator("start_of_apprenticeship", mode="before")
    @classmethod
    def _strict_date(cls, v):
        # uniquement YYYY-MM-DD (pas de timestamp ni de datetime ISO) ;
        # ConfigError n'est pas un ValueError : pydantic la laisse remonter
        if isinstance(v, date):
            return v
        return parse_start_date(v)

    def token(self) -> str:
        if self.github_token_env:
            env_val = os.environ.get(self.github_token_env)
            if env_val:
                return env_val
        return self.github_token

def default_config_dir() -> Path:
    """
    Dossier de config par utilisateur :
      - Linux   : $XDG_CONFIG_HOME/<app> (sinon ~/.config/<app>)
      - macOS   : ~/Library/Application Support/<vendor>.<app>
      - Windows : %APPDATA%/<vendor>/<app>/config
    """
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / f"{APP_VENDOR}.{APP_NAME}"
    if sys.platform.startswith("win"):
        appdata = os.environ.get("APPDATA") or str(Path.home() / "AppData" / "Roaming")
        return Path(appdata) / APP_VENDOR / APP_NAME / "config"
    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / APP_NAME.lower()

def default_config_path() -> Path:
    return default_config_dir() / CONFIG_FILENAME

def write_sample_config(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(SAMPLE_CONFIG, indent=4) + "\n", encoding="utf-8")
    # le fichier contient un token : lecture/écriture propriétaire seulement
    if os.name == "posix":
        path.chmod(0o600)
    return path

def _warn_if_exposed(path: Path, cfg: AppConfig):
    if os.name != "posix" or not cfg.github_token:
        return
    mode = path.stat().st_mode
    if mode & (stat.S_IRWXG | stat.S_IRWXO):
        print(f"[warn] {path} contains a token and is readable by others (chmod 600 {path})")

def load_config(path: Path) -> AppConfig:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Unable to read file at: {path} ({e})") from e
    try:
        if path.suffix.lower() in (".yaml", ".yml"):
            raw = yaml.safe_load(text)
        else:
            raw = json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Configuration parsing failed for {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"Configuration must be an object: {path}")
    try:
        cfg = AppConfig(**raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration {path}:\n{e}") from e
    _warn_if_exposed(path, cfg)
    return cfg

# -----------------------
# Weeks
# -----------------------

def monday_of(d: date) -> date:
    return d - timedelta(days=d.weekday())

def compute_week(start_date: date, today: date) -> int:
    """
    Nombre de semaines (lundi→lundi) écoulées depuis la semaine du début.
    Semaine du début = 0 ; négatif si today est avant cette semaine.
    """
    return (monday_of(today) - monday_of(start_date)).days // 7

def today_in(tz_name: Optional[str] = None) -> date:
    if not tz_name:
        return date.today()
    try:
        return datetime.now(ZoneInfo(tz_name)).date()
    except (ZoneInfoNotFoundError, ValueError):
        raise ConfigError(f"Unknown timezone: {tz_name}") from None

# -----------------------
# Paths
# -----------------------

def build_path(full_name: str, base_dir: str, week: int) -> str:
    """'Jane Middle Doe', 'dir', 5 -> 'dir/AN_Doe_Jane_005.pdf'"""
    tokens = full_name.split()
    if len(tokens) < 2:
        raise NameFormatError(f"The apprentice's name is not in the correct format: {full_name!r}")
    return f"{base_dir}/AN_{tokens[-1]}_{tokens[0]}_{week:03d}.pdf"

def repository_name(full_name: str) -> str:
    return full_name.replace(" ", "_")

# -----------------------
# GitHub
# -----------------------

def github_headers(token: str, user_agent: str) -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {token}",
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
        "User-Agent": user_agent,
    }

class GitHubContents:
    def __init__(self, session: aiohttp.ClientSession, api_url: str = "https://api.github.com",
                 timeout_sec: int = 20):
        self.session = session
        self.api_url = api_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout_sec)

    def contents_url(self, organization: str, repository: str, file_path: str) -> str:
        return (f"{self.api_url}/repos/{quote(organization, safe='')}/{quote(repository, safe='')}"
                f"/contents/{quote(file_path.strip('/'))}")

    async def get_content(self, organization: str, repository: str,
                          file_path: str, ref: str) -> Optional[Any]:
        """Métadonnées du fichier, None si 404, GitHubError sinon."""
        url = self.contents_url(organization, repository, file_path)
        async with self.session.get(url, params={"ref": ref}, timeout=self.timeout) as resp:
            if resp.status == 200:
                return await resp.json()
            if resp.status == 404:
                return None
            try:
                payload = await resp.json(content_type=None)
                message = payload.get("message", "") if isinstance(payload, dict) else str(payload)
            except (aiohttp.ContentTypeError, json.JSONDecodeError, ValueError):
                message = (await resp.text()).strip()
            raise GitHubError(resp.status, message or "Unexpected failure")

# -----------------------
# Prompt
# -----------------------

def prompt_week(default: int, input_fn: Callable[[str], str] = input) -> int:
    while True:
        try:
            answer = input_fn(f"{PROMPT} [{default}]: ").strip()
        except EOFError:
            return default
        if not answer:
            return default
        try:
            return int(answer)
        except ValueError:
            print(f"[warn] not a number: {answer!r}")

# -----------------------
# Pipeline
# -----------------------

async def check_reports(cfg: AppConfig, week: int, contents) -> List[Dict[str, Any]]:
    results: List[Dict[str, Any]] = []
    for apprentice in cfg.apprentices:
        repository = repository_name(apprentice)
        file_path = build_path(apprentice, cfg.file_dir, week)
        found = await contents.get_content(cfg.organization, repository, file_path, cfg.branch)
        if found is None:
            print(f"{apprentice}: file non-existing")
        results.append({
            "apprentice": apprentice,
            "repository": repository,
            "path": file_path,
            "present": found is not None,
        })
    return results

def to_markdown(results: List[Dict[str, Any]], week: int, branch: str) -> str:
    lines: List[str] = [f"# Ausbildungsnachweise — week {week:03d} ({branch})", ""]
    missing = [r for r in results if not r["present"]]
    if not missing:
        lines.append("_All reports present._")
    for r in results:
        mark = "x" if r["present"] else " "
        lines.append(f"- [{mark}] {r['apprentice']} — `{r['repository']}/{r['path']}`")
    lines.append("")
    return "\n".join(lines)

def export_results(results: List[Dict[str, Any]], week: int, branch: str, out_dir: Path) -> Path:
    week_dir = Path(out_dir) / f"week_{week:03d}"
    week_dir.mkdir(parents=True, exist_ok=True)
    payload = {
        "week": week,
        "branch": branch,
        "generated_at": datetime.now().isoformat(timespec="seconds"),
        "missing": [r["apprentice"] for r in results if not r["present"]],
        "results": results,
    }
    (week_dir / "report.json").write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    (week_dir / "report.md").write_text(to_markdown(results, week, branch), encoding="utf-8")
    return week_dir

async def run(config_path: Optional[str] = None, week: Optional[int] = None,
              assume_default: bool = False, export_dir: Optional[str] = None,
              input_fn: Callable[[str], str] = input) -> int:
    path = Path(config_path) if config_path else default_config_path()
    if not path.exists():
        write_sample_config(path)
        print(f"Created sample configuration at: {path}")
        return 0

    cfg = load_config(path)
    token = cfg.token()
    if not token:
        raise ConfigError(f"No GitHub token in {path} (nor in ${cfg.github_token_env})")

    if week is None:
        default_week = compute_week(cfg.start_of_apprenticeship, today_in(cfg.timezone))
        week = default_week if assume_default else prompt_week(default_week, input_fn)

    headers = github_headers(token, cfg.user_agent)
    async with aiohttp.ClientSession(headers=headers) as session:
        contents = GitHubContents(session, cfg.api_url, cfg.timeout_sec)
        results = await check_reports(cfg, week, contents)

    missing = sum(1 for r in results if not r["present"])
    print(f"[done] week {week:03d}: {missing}/{len(results)} reports missing")
    if export_dir:
        print(f"[done] Exported: {export_results(results, week, cfg.branch, Path(export_dir))}")
    return 0

# -----------------------
# CLI
# -----------------------

def main(argv: Optional[List[str]] = None) -> int:
    import argparse
    parser = argparse.ArgumentParser(description="Check weekly Ausbildungsnachweise in apprentices' GitHub repositories")
    parser.add_argument("--config", default=os.getenv("NACHWEIS_CONFIG"),
                        help=f"default: {default_config_path()}")
    parser.add_argument("--week", type=int, default=None,
                        help="report number to check (skips the prompt)")
    parser.add_argument("--yes", action="store_true",
                        help="use the current week without prompting")
    parser.add_argument("--export-dir", default=None,
                        help="write report.json / report.md to <dir>/week_<NNN>")
    args = parser.parse_args(argv)
    try:
        return asyncio.run(run(args.config, week=args.week, assume_default=args.yes,
                               export_dir=args.export_dir))
    except (ConfigError, NameFormatError, GitHubError, aiohttp.ClientError, asyncio.TimeoutError,
            OSError) as e:
        print(f"[error] {e}")
        return 1

if __name__ == "__main__":
    sys.exit(main())
