"""Nginx reverse-proxy site generation and activation."""

import logging
import shlex

from hostdeploy.result import ExitCode, FatalError

logger = logging.getLogger(__name__)

SITES_AVAILABLE = "/etc/nginx/sites-available"
SITES_ENABLED = "/etc/nginx/sites-enabled"
DEFAULT_SITE = "default"
_HEREDOC_MARKER = "HOSTDEPLOY_NGINX_EOF"


def site_paths(name):
    """(available, enabled) paths of the site file for a deployment."""
    return f"{SITES_AVAILABLE}/{name}", f"{SITES_ENABLED}/{name}"


def generate_site_conf(server, app_port):
    """Server block forwarding port 80 for server to the application port."""
    return f"""server {{
    listen 80;
    server_name {server};

    location / {{
        proxy_pass http://localhost:{app_port};
        proxy_http_version 1.1;
        proxy_set_header Upgrade $http_upgrade;
        proxy_set_header Connection 'upgrade';
        proxy_set_header Host $host;
        proxy_cache_bypass $http_upgrade;
        proxy_set_header X-Real-IP $remote_addr;
        proxy_set_header X-Forwarded-For $proxy_add_x_forwarded_for;
        proxy_set_header X-Forwarded-Proto $scheme;
    }}
}}
"""


def write_file_cmd(path, content):
    """Root-owned file write through a quoted heredoc (no shell expansion of $vars)."""
    if not content.endswith("\n"):
        content += "\n"
    return f"sudo tee {shlex.quote(path)} > /dev/null <<'{_HEREDOC_MARKER}'\n{content}{_HEREDOC_MARKER}"


async def _rollback(run_cmd, name, had_backup, default_was_enabled):
    available, enabled = site_paths(name)
    if had_backup:
        rc, _, _ = await run_cmd(f"sudo mv -f {shlex.quote(available)}.bak {shlex.quote(available)}")
    else:
        rc, _, _ = await run_cmd(f"sudo rm -f {shlex.quote(available)} {shlex.quote(enabled)}")
    if default_was_enabled:
        await run_cmd(f"sudo ln -sf {SITES_AVAILABLE}/{DEFAULT_SITE} {SITES_ENABLED}/{DEFAULT_SITE}")
    if rc != 0:
        logger.error("Could not restore the previous site file; nginx was not reloaded")
    else:
        logger.info("Restored the previous nginx site configuration")


async def configure_proxy(run_cmd, name, server, app_port):
    """Write, enable, verify and activate the site for a deployment.

    The daemon is reloaded only after ``nginx -t`` passes. When the check
    fails the on-disk site is rolled back and the running configuration is
    left untouched.

    Raises:
        FatalError: PROXY_CONFIG_WRITE, PROXY_CONFIG_TEST or PROXY_RELOAD.
    """
    available, enabled = site_paths(name)
    q_available = shlex.quote(available)

    rc, _, _ = await run_cmd(f"test -e {SITES_ENABLED}/{DEFAULT_SITE} || test -L {SITES_ENABLED}/{DEFAULT_SITE}",
                             log_output=False)
    default_was_enabled = rc == 0

    rc, _, _ = await run_cmd(f"test -f {q_available}", log_output=False)
    had_backup = rc == 0
    if had_backup:
        rc, _, _ = await run_cmd(f"sudo cp -a {q_available} {q_available}.bak")
        if rc != 0:
            raise FatalError(ExitCode.PROXY_CONFIG_WRITE, f"Failed to back up {available}")

    logger.info("Creating Nginx configuration...")
    rc, _, _ = await run_cmd(write_file_cmd(available, generate_site_conf(server, app_port)))
    if rc != 0:
        raise FatalError(ExitCode.PROXY_CONFIG_WRITE, "Failed to create Nginx config")

    logger.info("Enabling Nginx site...")
    rc, _, _ = await run_cmd(
        f"sudo ln -sf {q_available} {shlex.quote(enabled)} && sudo rm -f {SITES_ENABLED}/{DEFAULT_SITE}"
    )
    if rc != 0:
        raise FatalError(ExitCode.PROXY_CONFIG_WRITE, "Failed to enable Nginx site")

    logger.info("Testing Nginx configuration...")
    rc, _, _ = await run_cmd("sudo nginx -t")
    if rc != 0:
        await _rollback(run_cmd, name, had_backup, default_was_enabled)
        raise FatalError(ExitCode.PROXY_CONFIG_TEST, "Nginx configuration test failed")

    logger.info("Reloading Nginx...")
    rc, _, _ = await run_cmd("sudo systemctl reload nginx")
    if rc != 0:
        raise FatalError(ExitCode.PROXY_RELOAD, "Failed to reload Nginx")

    if had_backup:
        await run_cmd(f"sudo rm -f {q_available}.bak", log_output=False)


async def remove_site(run_cmd, name):
    """Delete the site files of a deployment and reload nginx.

    Raises:
        FatalError: PROXY_RELOAD.
    """
    available, enabled = site_paths(name)
    await run_cmd(f"sudo rm -f {shlex.quote(enabled)} {shlex.quote(available)} {shlex.quote(available)}.bak")
    rc, _, _ = await run_cmd("sudo systemctl reload nginx")
    if rc != 0:
        raise FatalError(ExitCode.PROXY_RELOAD, "Failed to reload Nginx")
