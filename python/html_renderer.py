import base64
import html
import json
from pathlib import Path
from typing import Optional, Tuple

from archive_ops.models import ArchiveResult, LayerPlan
from colored_logger import get_colored_logger

logger = get_colored_logger(__name__)

# Base64 payloads above this size are slow to open in most browsers
MAX_BASE64_SIZE = 1_000_000

HTML_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{{FILE_NAME}}</title>
<style>
  body { font-family: sans-serif; max-width: 48rem; margin: 2rem auto; padding: 0 1rem; }
  .password-display { font-family: monospace; background: #f3f3f3; padding: 0.1rem 0.4rem; }
  textarea { width: 100%; height: 8rem; font-family: monospace; font-size: 0.75rem; }
  button { padding: 0.5rem 1rem; margin-right: 0.5rem; }
</style>
</head>
<body>
<h1>{{FILE_NAME}}</h1>
<p>Original size: {{FILE_SIZE}}</p>
<p>Password: {{PASSWORD}}</p>
{{PASSWORD_DISPLAY}}
{{INSTRUCTIONS}}
<p>
  <button id="download">Download {{DOWNLOAD_ZIP_NAME}}</button>
  <button id="copy">Copy Base64</button>
</p>
<textarea id="payload" readonly>{{ZIP_BASE64}}</textarea>
<script>
  var downloadName = {{DOWNLOAD_NAME_JSON}};
  function payloadBytes() {
    var raw = atob(document.getElementById("payload").value.trim());
    var bytes = new Uint8Array(raw.length);
    for (var i = 0; i < raw.length; i++) { bytes[i] = raw.charCodeAt(i); }
    return bytes;
  }
  document.getElementById("download").addEventListener("click", function () {
    var blob = new Blob([payloadBytes()], { type: "application/octet-stream" });
    var link = document.createElement("a");
    link.href = URL.createObjectURL(blob);
    link.download = downloadName;
    document.body.appendChild(link);
    link.click();
    document.body.removeChild(link);
    URL.revokeObjectURL(link.href);
  });
  document.getElementById("copy").addEventListener("click", function () {
    var area = document.getElementById("payload");
    area.select();
    if (navigator.clipboard) { navigator.clipboard.writeText(area.value); }
    else { document.execCommand("copy"); }
  });
</script>
</body>
</html>
"""


def generate_html_content(
    zip_base64: str,
    file_name: str,
    download_zip_name: str,
    instructions: str,
    file_size_str: str,
    password_info: str,
    password_display: str,
) -> str:
    """
    Fill the HTML template.

    ``instructions`` and ``password_display`` are trusted HTML fragments;
    names are escaped here. The base64 payload is substituted last so the
    other replacements never scan it.
    """
    content = (
        HTML_TEMPLATE.replace("{{FILE_NAME}}", html.escape(file_name))
        .replace("{{DOWNLOAD_ZIP_NAME}}", html.escape(download_zip_name))
        .replace(
            "{{DOWNLOAD_NAME_JSON}}", json.dumps(download_zip_name).replace("<", "\\u003c")
        )
        .replace("{{INSTRUCTIONS}}", instructions)
        .replace("{{FILE_SIZE}}", html.escape(file_size_str))
        .replace("{{PASSWORD}}", html.escape(password_info))
        .replace("{{PASSWORD_DISPLAY}}", password_display)
    )
    return content.replace("{{ZIP_BASE64}}", zip_base64)


def generate_instructions(plan: LayerPlan, has_password: bool) -> str:
    """Explain how to get the original content back for a given layer plan."""
    plan = LayerPlan.parse(plan)
    prefix = "Use the download button, or copy the Base64 data and decode it manually"

    if plan is LayerPlan.DOUBLE:
        if has_password:
            return (
                f"<p>{prefix} into a ZIP file. Extract the outer ZIP and then the inner "
                "ZIP with the password (both layers use the same password). "
                "7-Zip or WinRAR are recommended.</p>"
            )
        return (
            f"<p>{prefix} into a ZIP file. Extract the outer ZIP and then the inner "
            "ZIP, no password is needed. 7-Zip or WinRAR are recommended.</p>"
        )

    if plan is LayerPlan.SINGLE:
        if has_password:
            return (
                f"<p>{prefix} into a ZIP file, then extract it with the password. "
                "7-Zip or WinRAR are recommended.</p>"
            )
        return (
            f"<p>{prefix} into a ZIP file, then extract it, no password is needed. "
            "7-Zip or WinRAR are recommended.</p>"
        )

    return f"<p>{prefix} into the original file. No extraction is needed.</p>"


def key_file_path(output_dir, base_name: str) -> Path:
    return Path(output_dir) / f"{base_name}.html.key"


def handle_password_display(
    secret: Optional[str],
    display_password: bool,
    base_name: str,
    output_dir,
) -> Tuple[str, str]:
    """
    Decide where the secret goes.

    Returns (password_info, password_display) for the template. When the
    secret is not displayed it is written to ``{base_name}.html.key`` next to
    the HTML file as raw UTF-8 bytes with no trailing newline.
    """
    if secret is None:
        return "not required", ""

    if display_password:
        return (
            "shown below",
            f'<p>Password: <span class="password-display">{html.escape(secret)}</span></p>',
        )

    key_path = key_file_path(output_dir, base_name)
    key_path.parent.mkdir(parents=True, exist_ok=True)
    with key_path.open("wb") as f:
        f.write(secret.encode("utf-8"))
    logger.info("Password saved to %s", key_path)
    return f"in the {base_name}.html.key file", ""


def encode_to_base64(data: bytes, label: str = "") -> str:
    """Base64-encode the payload, warning when it gets too big for a browser."""
    zip_base64 = base64.b64encode(data).decode("ascii")
    if len(zip_base64) > MAX_BASE64_SIZE:
        logger.warning(
            "Base64 data is large (%d bytes, recommended limit %d), "
            "the page may be slow to display or download: %s",
            len(zip_base64),
            MAX_BASE64_SIZE,
            label,
        )
    return zip_base64


def format_file_size(size: int) -> str:
    if size < 1024 * 1024:
        return f"{size / 1024:.2f} KB"
    return f"{size / (1024 * 1024):.2f} MB"


def write_html_file(html_content: str, output_dir, base_name: str) -> Path:
    output_path = Path(output_dir) / f"{base_name}.html"
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", encoding="utf-8") as f:
        f.write(html_content)
    return output_path


def render_html_file(
    result: ArchiveResult,
    base_name: str,
    output_dir,
    secret: Optional[str] = None,
    display_password: bool = True,
) -> Path:
    """
    Render one conversion unit to ``{output_dir}/{base_name}.html``.

    :param result: Archive bytes, total input size, download name and plan
    :param base_name: File or directory name the page is named after
    :param output_dir: Directory that receives the HTML (and the key file)
    :param secret: Secret the archive was encrypted with, if any
    :param display_password: Show the secret inline instead of writing a key file
    :return: Path of the written HTML file
    """
    zip_base64 = encode_to_base64(result.data, base_name)
    has_password = secret is not None and result.encrypted
    password_info, password_display = handle_password_display(
        secret if has_password else None, display_password, base_name, output_dir
    )

    html_content = generate_html_content(
        zip_base64,
        base_name,
        result.download_name,
        generate_instructions(result.plan, has_password),
        format_file_size(result.total_size),
        password_info,
        password_display,
    )

    output_path = write_html_file(html_content, output_dir, base_name)
    logger.info(
        "Wrote %s (%d bytes, download name %s)",
        output_path,
        len(html_content),
        result.download_name,
    )
    return output_path
