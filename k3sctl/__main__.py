from k3sctl.cli import app

if __name__ == "__main__":
    app(prog_name="k3sctl")
