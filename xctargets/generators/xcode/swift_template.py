from pathlib import Path
from string import Template

from xctargets.details.errors import IOWarning

CONTROLLER_FILENAME = "ReactNativeViewController.swift"

CONTROLLER_TEMPLATE = Template(
    """\
import UIKit
import ExpoModulesCore

class ReactNativeViewController: UIViewController {
    private var appBridge: RCTBridge?
    private var factory: ExpoReactNativeFactory?

    override func viewDidLoad() {
        super.viewDidLoad()
        setupReactNativeView()
    }

    private func setupReactNativeView() {
        factory = ExpoReactNativeFactory()

        guard let bridge = factory?.createBridge(
            moduleName: "$module_name",
            initialProperties: getInitialProperties(),
            launchOptions: nil
        ) else {
            showError("Failed to initialize React Native")
            return
        }
        self.appBridge = bridge

        let rootView = RCTRootView(
            bridge: bridge,
            moduleName: "$module_name",
            initialProperties: getInitialProperties()
        )
        rootView.backgroundColor = .clear
        rootView.frame = view.bounds
        rootView.autoresizingMask = [.flexibleWidth, .flexibleHeight]
        view.addSubview(rootView)
    }

    private func getInitialProperties() -> [String: Any] {
        return ["targetName": "$target_name", "entry": "$entry"]
    }

    private func showError(_ message: String) {
        let alert = UIAlertController(
            title: "Error",
            message: message,
            preferredStyle: .alert
        )
        alert.addAction(UIAlertAction(title: "OK", style: .default) { _ in
            self.extensionContext?.completeRequest(returningItems: nil)
        })
        present(alert, animated: true)
    }
}
"""
)


# The JS side registers the component under the product name without the
# "Target" suffix...
def module_name_for(product_name: str) -> str:
    if product_name.endswith("Target"):
        return product_name[: -len("Target")]
    return product_name


def render_view_controller(product_name: str, target_name: str, entry: str) -> str:
    return CONTROLLER_TEMPLATE.substitute(
        module_name=module_name_for(product_name),
        target_name=target_name,
        entry=entry,
    )


def write_view_controller(path: Path, source: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(source)
    except OSError as e:
        raise IOWarning(f"failed to write {path}: {e}") from e
