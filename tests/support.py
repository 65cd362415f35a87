"""Shared test helpers: Dokku directory sandboxes and sample nginx configs.

The sandbox mirrors what a Dokku host looks like to the trigger: app
directories under ``DOKKU_ROOT`` and frontend service directories carrying
``PROTECTED`` and optional ``PROVIDER`` files.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from dokku_forward_auth.domain.settings import Settings

# Dokku's default template shape: an HTTP redirect server and an HTTPS server
# with four error-page locations. No trailing newline, like the template output.
SAMPLE_NGINX_CONF = """server {
  listen      [::]:80;
  listen      80;
  server_name myapp.example.com;

  include /home/dokku/myapp/nginx.conf.d/*.conf;
  location / {
    return 301 https://\\$host:443\\$request_uri;
  }
}

server {
  listen      [::]:443 ssl http2;
  listen      443 ssl http2;
  server_name myapp.example.com;

  location    / {
    proxy_pass  http://myapp-5000;
  }

  error_page 400 402 403 /400-error.html;
  location /400-error.html {
    root /var/lib/dokku/data/nginx-vhosts/dokku-errors;
    internal;
  }

  error_page 404 /404-error.html;
  location /404-error.html {
    root /var/lib/dokku/data/nginx-vhosts/dokku-errors;
    internal;
  }

  error_page 500 501 503 504 /500-error.html;
  location /500-error.html {
    root /var/lib/dokku/data/nginx-vhosts/dokku-errors;
    internal;
  }

  error_page 502 /502-error.html;
  location /502-error.html {
    root /var/lib/dokku/data/nginx-vhosts/dokku-errors;
    internal;
  }
  include /home/dokku/myapp/nginx.conf.d/*.conf;
}"""

AUTHELIA_FORWARD_AUTH_CONF = """# Authelia forward auth - managed by dokku-sso plugin
# Server-level locations
location /authelia-auth {
    internal;
    proxy_pass https://auth.example.com/api/authz/auth-request;
    proxy_pass_request_body off;
    proxy_ssl_verify off;
    proxy_set_header Content-Length "";
    proxy_set_header X-Original-Method $request_method;
    proxy_set_header X-Original-URL $scheme://$http_host$request_uri;
    proxy_set_header X-Forwarded-For $proxy_add_x_forwarded_for;
    proxy_set_header X-Forwarded-Proto $scheme;
    proxy_set_header X-Forwarded-Host $http_host;
    proxy_set_header X-Forwarded-Uri $request_uri;
}

location @forward_auth_login {
    auth_request off;
    return 302 https://auth.example.com/?rd=$scheme://$http_host$request_uri;
}

# Directives below are injected into location / by the nginx-pre-reload trigger
auth_request /authelia-auth;
auth_request_set $authelia_user $upstream_http_remote_user;
auth_request_set $authelia_groups $upstream_http_remote_groups;
auth_request_set $authelia_name $upstream_http_remote_name;
auth_request_set $authelia_email $upstream_http_remote_email;
error_page 401 = @forward_auth_login;"""

AUTHENTIK_FORWARD_AUTH_CONF = """# Authentik forward auth - managed by dokku-sso plugin
# Server-level locations
location /outpost.goauthentik.io {
    internal;
    proxy_pass https://authentik.example.com/outpost.goauthentik.io/auth/nginx;
    proxy_pass_request_body off;
    proxy_ssl_verify off;
    proxy_set_header Content-Length "";
    proxy_set_header X-Original-Method $request_method;
    proxy_set_header X-Original-URL $scheme://$http_host$request_uri;
}

location @forward_auth_login {
    auth_request off;
    return 302 https://authentik.example.com/outpost.goauthentik.io/start?rd=$scheme://$http_host$request_uri;
}

# Directives below are injected into location / by the nginx-pre-reload trigger
auth_request /outpost.goauthentik.io;
auth_request_set $authentik_user $upstream_http_remote_user;
auth_request_set $authentik_groups $upstream_http_remote_groups;
auth_request_set $authentik_name $upstream_http_remote_name;
auth_request_set $authentik_email $upstream_http_remote_email;
error_page 401 = @forward_auth_login;"""


@dataclass(frozen=True)
class DokkuSandbox:
    """Temporary Dokku host layout rooted at ``root``."""

    root: Path
    dokku_root: Path
    frontend_root: Path

    @property
    def etc_root(self) -> Path:
        return self.root / "etc"

    @property
    def env(self) -> dict[str, str]:
        """Environment pointing every settings layer into the sandbox."""

        return {
            "DOKKU_ROOT": str(self.dokku_root),
            "DOKKU_FORWARD_AUTH_FRONTEND_ROOT": str(self.frontend_root),
            "DOKKU_FORWARD_AUTH_ETC": str(self.etc_root),
        }

    def apply_env(self, monkeypatch) -> None:
        for key, value in self.env.items():
            monkeypatch.setenv(key, value)

    def settings(self, **overrides: object) -> Settings:
        values: dict[str, object] = {
            "dokku_root": str(self.dokku_root),
            "frontend_root": str(self.frontend_root),
        }
        values.update(overrides)
        return Settings.from_mapping(values)

    def create_app(self, name: str, nginx_conf: str | None = None, fragment: str | None = None) -> Path:
        """Create ``<dokku_root>/<name>`` with optional ``nginx.conf`` and fragment."""

        app_dir = self.dokku_root / name
        app_dir.mkdir(parents=True, exist_ok=True)
        if nginx_conf is not None:
            write_exact(app_dir / "nginx.conf", nginx_conf)
        if fragment is not None:
            fragment_dir = app_dir / "nginx.conf.d"
            fragment_dir.mkdir(parents=True, exist_ok=True)
            write_exact(fragment_dir / "forward-auth.conf", fragment)
        return app_dir

    def create_frontend_service(
        self,
        name: str,
        protected: Iterable[str],
        *,
        provider: str | None = None,
    ) -> Path:
        """Create a frontend service directory listing *protected* apps."""

        service_dir = self.frontend_root / name
        service_dir.mkdir(parents=True, exist_ok=True)
        apps = list(protected)
        if apps:
            write_exact(service_dir / "PROTECTED", "\n".join(apps) + "\n")
        if provider is not None:
            write_exact(service_dir / "PROVIDER", provider + "\n")
        return service_dir

    def nginx_conf(self, app: str) -> Path:
        return self.dokku_root / app / "nginx.conf"

    def read_conf(self, app: str) -> str:
        return read_exact(self.nginx_conf(app))


def create_dokku_sandbox(tmp_path: Path) -> DokkuSandbox:
    """Return an empty sandbox below *tmp_path*."""

    dokku_root = tmp_path / "dokku"
    frontend_root = tmp_path / "services" / "sso" / "frontend"
    dokku_root.mkdir(parents=True)
    frontend_root.mkdir(parents=True)
    return DokkuSandbox(root=tmp_path, dokku_root=dokku_root, frontend_root=frontend_root)


def write_exact(path: Path, text: str) -> None:
    """Write *text* without newline translation."""

    path.write_bytes(text.encode("utf-8"))


def read_exact(path: Path) -> str:
    """Read *path* without newline translation."""

    return path.read_bytes().decode("utf-8")
